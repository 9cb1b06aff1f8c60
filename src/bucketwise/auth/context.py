"""Authenticated caller context."""

from __future__ import annotations

from dataclasses import dataclass, field

ANONYMOUS_USER_ID = "anonymous"


@dataclass(frozen=True)
class Principal:
    """A verified caller and the projects it may act on.

    `tenant_ids` is computed once per request by the auth layer; the chat core
    treats it as given and never derives it.
    """

    user_id: str
    tenant_ids: frozenset[str] = field(default_factory=frozenset)
    is_admin: bool = False

    def owns(self, tenant_id: str | None) -> bool:
        return tenant_id is not None and tenant_id in self.tenant_ids
