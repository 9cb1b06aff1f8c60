"""Request authentication and principal resolution."""

from bucketwise.auth.context import Principal
from bucketwise.auth.errors import AdminRequiredError, AuthorizationError, NodeAccessDeniedError

__all__ = [
    "AdminRequiredError",
    "AuthorizationError",
    "NodeAccessDeniedError",
    "Principal",
]
