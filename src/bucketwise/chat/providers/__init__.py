"""Interchangeable chat backends behind one streaming contract."""

from bucketwise.chat.providers.anthropic import AnthropicProvider
from bucketwise.chat.providers.base import ChatProvider, ProviderName
from bucketwise.chat.providers.openai import OpenAIProvider
from bucketwise.chat.providers.registry import PROVIDER_FACTORIES, create_provider

__all__ = [
    "PROVIDER_FACTORIES",
    "AnthropicProvider",
    "ChatProvider",
    "OpenAIProvider",
    "ProviderName",
    "create_provider",
]
