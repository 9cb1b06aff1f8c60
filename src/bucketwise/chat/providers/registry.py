"""Backend selection.

The backend is chosen once per process from settings. Unknown names and
missing credentials fail here, before the app accepts requests.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from bucketwise.chat.providers.anthropic import AnthropicProvider
from bucketwise.chat.providers.base import ChatProvider, ProviderName
from bucketwise.chat.providers.openai import OpenAIProvider
from bucketwise.config import Settings
from bucketwise.errors import ProviderConfigurationError

log = structlog.get_logger()

ProviderFactory = Callable[[Settings], ChatProvider]

PROVIDER_FACTORIES: dict[ProviderName, ProviderFactory] = {
    ProviderName.ANTHROPIC: AnthropicProvider.from_settings,
    ProviderName.OPENAI: OpenAIProvider.from_settings,
}

_missing = set(ProviderName) - set(PROVIDER_FACTORIES)
if _missing:
    raise RuntimeError(f"No factory registered for chat providers: {sorted(_missing)}")


def parse_provider_name(raw: str) -> ProviderName:
    try:
        return ProviderName(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in ProviderName)
        raise ProviderConfigurationError(raw, f"unknown provider; use one of: {allowed}") from None


def create_provider(settings: Settings) -> ChatProvider:
    """Build the configured backend.

    Raises:
        ProviderConfigurationError: unknown provider name or missing API key.
    """
    name = parse_provider_name(settings.ai_provider)
    provider = PROVIDER_FACTORIES[name](settings)
    log.info("chat_provider_ready", provider=name.value, model=provider.model)
    return provider
