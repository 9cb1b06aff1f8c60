"""Streaming chat endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from bucketwise.api.dependencies import (
    get_chat_metrics,
    get_chat_provider,
    get_chat_workers,
    get_conversation_store,
    get_directive_store,
    get_tenant_lookup,
)
from bucketwise.api.schemas import ChatRequest
from bucketwise.auth.context import Principal
from bucketwise.auth.dependencies import get_current_principal
from bucketwise.chat.providers.base import ChatProvider
from bucketwise.chat.repositories import ConversationStore, DirectiveStore, TenantLookup
from bucketwise.chat.session import ChatMetrics, ChatStreamSession, DetachedWorkers

router = APIRouter(tags=["chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@router.post("/chat")
async def chat(
    request: ChatRequest,
    principal: Principal = Depends(get_current_principal),
    tenants: TenantLookup = Depends(get_tenant_lookup),
    directives: DirectiveStore = Depends(get_directive_store),
    conversations: ConversationStore = Depends(get_conversation_store),
    provider: ChatProvider = Depends(get_chat_provider),
    metrics: ChatMetrics = Depends(get_chat_metrics),
    workers: DetachedWorkers = Depends(get_chat_workers),
) -> StreamingResponse:
    """Stream an AI reply to a message posted on a page or bucket.

    Authorization and the write of the user's turn happen before the response
    starts; failures there are ordinary HTTP errors (403, 422, 500). After
    that the body is a `text/event-stream` of token frames ending in exactly
    one `done` or `error` frame.
    """
    session = ChatStreamSession(
        principal=principal,
        tenants=tenants,
        directives=directives,
        conversations=conversations,
        provider=provider,
        workers=workers,
        metrics=metrics,
    )
    await session.prepare(request.parent_id, request.parent_type, request.content)

    return StreamingResponse(
        session.frames(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )
