"""Chat history endpoints: list a thread, flag or extract a reply.

A missing message id and a message in another project's thread get the same
403, so the routes never reveal which ids exist.
"""

from fastapi import APIRouter, Depends, HTTPException, status

from bucketwise.api.dependencies import (
    get_bucket_item_store,
    get_conversation_store,
    get_tenant_lookup,
)
from bucketwise.api.schemas import ExtractResponse, TurnListResponse, TurnResponse, TurnUpdate
from bucketwise.auth.context import Principal
from bucketwise.auth.dependencies import get_current_principal
from bucketwise.auth.errors import MessageAccessDeniedError
from bucketwise.chat.extraction import extract_turn
from bucketwise.chat.ownership import authorize_node, authorize_turn
from bucketwise.chat.repositories import BucketItemStore, ConversationStore, TenantLookup
from bucketwise.errors import TurnNotExtractableError, TurnNotFoundError

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/{parent_type}/{parent_id}", response_model=TurnListResponse)
async def list_messages(
    parent_type: str,
    parent_id: str,
    principal: Principal = Depends(get_current_principal),
    tenants: TenantLookup = Depends(get_tenant_lookup),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> TurnListResponse:
    """Return a node's chat thread, oldest first."""
    kind = await authorize_node(tenants, principal, parent_id, parent_type)
    turns = await conversations.list_ordered(parent_id, kind)
    return TurnListResponse(
        messages=[TurnResponse.model_validate(t) for t in turns],
        total=len(turns),
    )


@router.patch("/{turn_id}", response_model=TurnResponse)
async def update_message(
    turn_id: str,
    update: TurnUpdate,
    principal: Principal = Depends(get_current_principal),
    tenants: TenantLookup = Depends(get_tenant_lookup),
    conversations: ConversationStore = Depends(get_conversation_store),
) -> TurnResponse:
    """Set or clear a reply's saved flag."""
    await authorize_turn(tenants, principal, turn_id, await conversations.get(turn_id))
    turn = await conversations.mark_saved(turn_id, saved=update.saved)
    if turn is None:
        raise MessageAccessDeniedError()
    return TurnResponse.model_validate(turn)


@router.post("/{turn_id}/extract", response_model=ExtractResponse)
async def extract_message(
    turn_id: str,
    principal: Principal = Depends(get_current_principal),
    tenants: TenantLookup = Depends(get_tenant_lookup),
    conversations: ConversationStore = Depends(get_conversation_store),
    items: BucketItemStore = Depends(get_bucket_item_store),
) -> ExtractResponse:
    """Copy a reply into its page or bucket as a note."""
    await authorize_turn(tenants, principal, turn_id, await conversations.get(turn_id))
    try:
        turn, item_id = await extract_turn(conversations, items, turn_id)
    except TurnNotFoundError as e:
        raise MessageAccessDeniedError() from e
    except TurnNotExtractableError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    return ExtractResponse(message=TurnResponse.model_validate(turn), item_id=item_id)
