"""Copy an assistant reply into its page or bucket as a note."""

from __future__ import annotations

import structlog

from bucketwise.chat.repositories import BucketItemStore, ConversationStore
from bucketwise.errors import TurnNotExtractableError, TurnNotFoundError
from bucketwise.models.chat import Turn, TurnRole

log = structlog.get_logger()

TITLE_MAX_LENGTH = 80


def note_title(content: str) -> str:
    """First non-blank line of the reply, shortened for display."""
    first_line = next((line.strip() for line in content.splitlines() if line.strip()), "")
    title = first_line.lstrip("#").strip() or "Chat note"
    if len(title) > TITLE_MAX_LENGTH:
        title = title[: TITLE_MAX_LENGTH - 3].rstrip() + "..."
    return title


async def extract_turn(
    conversations: ConversationStore,
    items: BucketItemStore,
    turn_id: str,
) -> tuple[Turn, str]:
    """Pin an extractable reply under the same parent and mark it saved.

    The saved flag is claimed before the note is written, so of two
    concurrent calls only one creates a note. If writing the note fails the
    claim is released.

    Returns:
        The updated turn and the id of the new bucket item.

    Raises:
        TurnNotFoundError: no such turn.
        TurnNotExtractableError: user turns, error replies, or already saved.
    """
    turn = await conversations.get(turn_id)
    if turn is None:
        raise TurnNotFoundError(turn_id)
    if turn.role != TurnRole.ASSISTANT or not turn.has_saveable_content:
        raise TurnNotExtractableError(turn_id, "message has no saveable content")

    updated = await conversations.claim_unsaved(turn_id)
    if updated is None:
        raise TurnNotExtractableError(turn_id, "message was already saved")

    try:
        item_id = await items.add_note(
            updated.parent_id,
            updated.parent_type,
            title=note_title(updated.content),
            preview=updated.content,
        )
    except Exception:
        log.warning("chat_turn_extract_failed", turn_id=turn_id, exc_info=True)
        await conversations.mark_saved(turn_id, saved=False)
        raise

    log.info(
        "chat_turn_extracted",
        turn_id=turn_id,
        item_id=item_id,
        parent_id=turn.parent_id,
        parent_type=turn.parent_type,
    )
    return updated, item_id
