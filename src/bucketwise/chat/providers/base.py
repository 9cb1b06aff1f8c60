"""Chat backend contract."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from enum import StrEnum
from typing import Protocol, runtime_checkable

from bucketwise.models.chat import PromptMessage


class ProviderName(StrEnum):
    """Backends selectable with BUCKETWISE_AI_PROVIDER."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@runtime_checkable
class ChatProvider(Protocol):
    """Streams a reply to a conversation as text fragments.

    One instance is created at startup and shared by every request, so
    implementations must not keep per-call state.
    """

    name: ProviderName
    model: str

    def stream_completion(self, messages: Sequence[PromptMessage]) -> AsyncIterator[str]:
        """Yield reply fragments in order until the backend signals completion.

        Raises:
            ProviderError: when the backend fails before or during the stream.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the backend client."""
        ...
