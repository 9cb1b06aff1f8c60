"""Structured authorization errors for consistent API responses.

All 403 errors should use these classes for frontend-parseable responses.
"""

from enum import StrEnum
from typing import Any

from fastapi import HTTPException, status


class AuthErrorCode(StrEnum):
    """Error codes for authorization failures."""

    NODE_ACCESS_DENIED = "node_access_denied"
    MESSAGE_ACCESS_DENIED = "message_access_denied"
    ADMIN_REQUIRED = "admin_required"


class AuthorizationError(HTTPException):
    """Base class for structured 403 errors.

    All authorization errors include:
    - error: Machine-readable error code
    - message: Human-readable description
    - details: Additional context (optional)
    """

    def __init__(
        self,
        code: AuthErrorCode,
        message: str,
        *,
        details: dict[str, Any] | None = None,
    ):
        detail: dict[str, Any] = {
            "error": code.value,
            "message": message,
        }
        if details:
            detail["details"] = details
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NodeAccessDeniedError(AuthorizationError):
    """Raised when a content node is unknown or belongs to another project.

    Both cases produce the same response so callers cannot probe which ids exist.
    """

    def __init__(self, node_kind: str) -> None:
        super().__init__(
            code=AuthErrorCode.NODE_ACCESS_DENIED,
            message="You do not have access to this conversation",
            details={"parent_type": node_kind},
        )


class MessageAccessDeniedError(AuthorizationError):
    """Raised when a chat message is unknown or sits in another project's thread.

    Carries no details, so a missing id and a foreign id look the same.
    """

    def __init__(self) -> None:
        super().__init__(
            code=AuthErrorCode.MESSAGE_ACCESS_DENIED,
            message="You do not have access to this message",
        )


class AdminRequiredError(AuthorizationError):
    """Raised when a non-admin calls an administrative endpoint."""

    def __init__(self) -> None:
        super().__init__(
            code=AuthErrorCode.ADMIN_REQUIRED,
            message="Administrator access required",
        )
