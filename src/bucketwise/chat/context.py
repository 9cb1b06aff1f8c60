"""Build the bounded message list handed to the chat backend."""

from __future__ import annotations

from bucketwise.chat.repositories import ConversationStore, DirectiveStore
from bucketwise.models.chat import NodeKind, PromptMessage, PromptRole, TurnRole

# Most recent turns sent to the backend. Fixed; not configurable per request.
HISTORY_LIMIT = 50


async def assemble_context(
    directives: DirectiveStore,
    conversations: ConversationStore,
    parent_id: str,
    parent_kind: NodeKind,
) -> list[PromptMessage]:
    """Return `[directive?] + last HISTORY_LIMIT turns`, oldest first.

    A missing or blank directive is omitted; no default is substituted.
    """
    messages: list[PromptMessage] = []

    directive = await directives.get(parent_kind.value)
    if directive is not None and directive.context_query.strip():
        messages.append(PromptMessage(role=PromptRole.DIRECTIVE, content=directive.context_query))

    history = await conversations.list_ordered(parent_id, parent_kind)
    for turn in history[-HISTORY_LIMIT:]:
        role = PromptRole.USER if turn.role == TurnRole.USER else PromptRole.ASSISTANT
        messages.append(PromptMessage(role=role, content=turn.content))

    return messages
