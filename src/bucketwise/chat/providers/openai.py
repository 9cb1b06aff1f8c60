"""OpenAI Chat Completions backend."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence

import openai
import structlog
from openai import AsyncOpenAI

from bucketwise.chat.providers.base import ProviderName
from bucketwise.config import Settings
from bucketwise.errors import ProviderConfigurationError, ProviderError
from bucketwise.models.chat import PromptMessage, PromptRole

log = structlog.get_logger()

_ROLE_MAP = {
    PromptRole.DIRECTIVE: "system",
    PromptRole.USER: "user",
    PromptRole.ASSISTANT: "assistant",
}


def to_openai_messages(messages: Sequence[PromptMessage]) -> list[dict[str, str]]:
    """Flatten context into one list; directives travel inline as `system`."""
    return [{"role": _ROLE_MAP[m.role], "content": m.content} for m in messages]


class OpenAIProvider:
    """Streams replies with `AsyncOpenAI.chat.completions.create(stream=True)`."""

    name = ProviderName.OPENAI

    def __init__(self, client: AsyncOpenAI, *, model: str, max_tokens: int) -> None:
        self._client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIProvider:
        api_key = settings.openai_api_key.get_secret_value()
        if not api_key:
            raise ProviderConfigurationError(
                ProviderName.OPENAI,
                "OPENAI_API_KEY (or BUCKETWISE_OPENAI_API_KEY) is required",
            )
        return cls(
            AsyncOpenAI(api_key=api_key),
            model=settings.openai_model,
            max_tokens=settings.ai_max_tokens,
        )

    async def stream_completion(self, messages: Sequence[PromptMessage]) -> AsyncIterator[str]:
        try:
            stream = await self._client.chat.completions.create(
                model=self.model,
                messages=to_openai_messages(messages),  # type: ignore[arg-type]
                max_completion_tokens=self.max_tokens,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except openai.APIError as e:
            log.warning("openai_stream_failed", model=self.model, error=str(e))
            raise ProviderError(e.message, details={"provider": self.name}) from e

    async def aclose(self) -> None:
        await self._client.close()
