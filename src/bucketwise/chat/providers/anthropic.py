"""Anthropic Messages API backend."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any

import anthropic
import structlog
from anthropic import AsyncAnthropic

from bucketwise.chat.providers.base import ProviderName
from bucketwise.config import Settings
from bucketwise.errors import ProviderConfigurationError, ProviderError
from bucketwise.models.chat import PromptMessage, PromptRole

log = structlog.get_logger()


def to_anthropic_payload(
    messages: Sequence[PromptMessage],
) -> tuple[str | None, list[dict[str, str]]]:
    """Split context into the `system` slot and alternating turns.

    The first directive becomes the system prompt; later directives are
    dropped. Consecutive turns from the same speaker are merged and leading
    assistant turns are removed, since the API expects a user turn first and
    strict alternation afterwards.
    """
    system: str | None = None
    turns: list[dict[str, str]] = []
    for message in messages:
        if message.role == PromptRole.DIRECTIVE:
            if system is None:
                system = message.content
            continue
        role = "user" if message.role == PromptRole.USER else "assistant"
        if not turns and role == "assistant":
            continue
        if turns and turns[-1]["role"] == role:
            turns[-1]["content"] = f"{turns[-1]['content']}\n\n{message.content}"
        else:
            turns.append({"role": role, "content": message.content})
    return system, turns


class AnthropicProvider:
    """Streams replies with `AsyncAnthropic.messages.stream`."""

    name = ProviderName.ANTHROPIC

    def __init__(self, client: AsyncAnthropic, *, model: str, max_tokens: int) -> None:
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> AnthropicProvider:
        api_key = settings.anthropic_api_key.get_secret_value()
        if not api_key:
            raise ProviderConfigurationError(
                ProviderName.ANTHROPIC,
                "ANTHROPIC_API_KEY (or BUCKETWISE_ANTHROPIC_API_KEY) is required",
            )
        return cls(
            AsyncAnthropic(api_key=api_key),
            model=settings.anthropic_model,
            max_tokens=settings.ai_max_tokens,
        )

    async def stream_completion(self, messages: Sequence[PromptMessage]) -> AsyncIterator[str]:
        system, turns = to_anthropic_payload(messages)
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": turns,
        }
        if system:
            request["system"] = system

        try:
            async with self._client.messages.stream(**request) as stream:
                async for event in stream:
                    if event.type == "content_block_delta" and event.delta.type == "text_delta":
                        yield event.delta.text
        except anthropic.APIError as e:
            log.warning("anthropic_stream_failed", model=self.model, error=str(e))
            raise ProviderError(e.message, details={"provider": self.name}) from e

    async def aclose(self) -> None:
        await self._client.close()
