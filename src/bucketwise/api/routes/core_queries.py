"""Core queries: per-node-kind directives prepended to chat context."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from bucketwise.api.dependencies import get_directive_store
from bucketwise.api.schemas import CoreQueryResponse, CoreQueryUpdate
from bucketwise.auth.context import Principal
from bucketwise.auth.dependencies import get_current_principal, require_admin
from bucketwise.chat.repositories import DirectiveStore
from bucketwise.models.chat import NodeKind

log = structlog.get_logger()

router = APIRouter(prefix="/core-queries", tags=["core-queries"])

admin_router = APIRouter(
    prefix="/admin/core-queries",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=list[CoreQueryResponse])
async def list_core_queries(
    _principal: Principal = Depends(get_current_principal),
    directives: DirectiveStore = Depends(get_directive_store),
) -> list[CoreQueryResponse]:
    """List every configured directive."""
    return [CoreQueryResponse.model_validate(d) for d in await directives.list_all()]


@admin_router.get("", response_model=list[CoreQueryResponse])
async def admin_list_core_queries(
    directives: DirectiveStore = Depends(get_directive_store),
) -> list[CoreQueryResponse]:
    """List directives for editing."""
    return [CoreQueryResponse.model_validate(d) for d in await directives.list_all()]


@admin_router.put("/{location_key}", response_model=CoreQueryResponse)
async def set_core_query(
    location_key: str,
    update: CoreQueryUpdate,
    principal: Principal = Depends(require_admin),
    directives: DirectiveStore = Depends(get_directive_store),
) -> CoreQueryResponse:
    """Create or replace the directive for one node kind."""
    kind = NodeKind.parse(location_key)
    if kind is None:
        allowed = ", ".join(k.value for k in NodeKind)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown location key '{location_key}'. Use one of: {allowed}",
        )
    directive = await directives.upsert(kind.value, update.context_query)
    log.info("core_query_updated", location_key=kind.value, user_id=principal.user_id)
    return CoreQueryResponse.model_validate(directive)
