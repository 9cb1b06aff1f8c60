"""Resolve a content node to the project that owns it.

Page-level kinds are addressed by the project id itself. Bucket-level kinds
are one hop away: the bucket row carries the project foreign key.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from bucketwise.auth.context import Principal
from bucketwise.auth.errors import MessageAccessDeniedError, NodeAccessDeniedError
from bucketwise.chat.repositories import TenantLookup
from bucketwise.models.chat import NodeKind, Turn

log = structlog.get_logger()

Resolver = Callable[[TenantLookup, str], Awaitable[str | None]]


async def _page(lookup: TenantLookup, node_id: str) -> str | None:
    return node_id if await lookup.project_exists(node_id) else None


async def _goal_bucket(lookup: TenantLookup, node_id: str) -> str | None:
    return await lookup.goal_section_project(node_id)


async def _lab_bucket(lookup: TenantLookup, node_id: str) -> str | None:
    return await lookup.lab_bucket_project(node_id)


async def _deliverable_bucket(lookup: TenantLookup, node_id: str) -> str | None:
    return await lookup.deliverable_project(node_id)


RESOLVERS: dict[NodeKind, Resolver] = {
    NodeKind.GOAL_PAGE: _page,
    NodeKind.LAB_PAGE: _page,
    NodeKind.DELIVERABLE_PAGE: _page,
    NodeKind.GOAL_BUCKET: _goal_bucket,
    NodeKind.LAB_BUCKET: _lab_bucket,
    NodeKind.DELIVERABLE_BUCKET: _deliverable_bucket,
}

_missing = set(NodeKind) - set(RESOLVERS)
if _missing:
    raise RuntimeError(f"No tenant resolver registered for node kinds: {sorted(_missing)}")


async def resolve_tenant(lookup: TenantLookup, node_id: str, node_kind: str) -> str | None:
    """Return the owning project id, or None when the node cannot be resolved.

    Unknown kinds and empty ids resolve to None (fail closed).
    """
    kind = NodeKind.parse(node_kind)
    if kind is None or not node_id:
        return None
    return await RESOLVERS[kind](lookup, node_id)


async def authorize_node(
    lookup: TenantLookup,
    principal: Principal,
    node_id: str,
    node_kind: str,
) -> NodeKind:
    """Check the principal may act on a node and return its parsed kind.

    Raises:
        NodeAccessDeniedError: if the node does not resolve, or resolves to a
            project outside the principal's tenant set. The two cases are
            indistinguishable to the caller.
    """
    tenant_id = await resolve_tenant(lookup, node_id, node_kind)
    if not principal.owns(tenant_id):
        log.info(
            "chat_node_access_denied",
            user_id=principal.user_id,
            parent_id=node_id,
            parent_type=node_kind,
            resolved=tenant_id is not None,
        )
        raise NodeAccessDeniedError(node_kind)
    return NodeKind(node_kind)


async def authorize_turn(
    lookup: TenantLookup,
    principal: Principal,
    turn_id: str,
    turn: Turn | None,
) -> Turn:
    """Check the principal may act on a persisted turn found by id.

    Raises:
        MessageAccessDeniedError: if there is no such turn or its thread
            belongs to another project.
    """
    tenant_id = None
    if turn is not None:
        tenant_id = await resolve_tenant(lookup, turn.parent_id, turn.parent_type)
    if turn is None or not principal.owns(tenant_id):
        log.info(
            "chat_turn_access_denied",
            user_id=principal.user_id,
            turn_id=turn_id,
            found=turn is not None,
        )
        raise MessageAccessDeniedError()
    return turn
