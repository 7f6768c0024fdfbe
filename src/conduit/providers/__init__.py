"""Provider implementations and lookup by id."""

from __future__ import annotations

from conduit.errors import ConfigurationError

from .anthropic import AnthropicProvider
from .base import Provider, ProviderCapabilities
from .deepseek import DeepSeekProvider
from .gemini import GeminiProvider
from .mock import MockProvider
from .openai import OpenAIProvider

_PROVIDERS: dict[str, type] = {
    "anthropic": AnthropicProvider,
    "deepseek": DeepSeekProvider,
    "gemini": GeminiProvider,
    "mock": MockProvider,
    "openai": OpenAIProvider,
}


def get_provider(name: str, api_key: str | None) -> Provider:
    """Return a fresh adapter for provider id *name*."""
    cls = _PROVIDERS.get(name)
    if cls is None:
        raise ConfigurationError(
            f"Unknown provider: {name!r}",
            hint=f"Supported providers: {', '.join(sorted(_PROVIDERS))}",
        )
    return cls(api_key)


__all__ = [
    "AnthropicProvider",
    "DeepSeekProvider",
    "GeminiProvider",
    "MockProvider",
    "OpenAIProvider",
    "Provider",
    "ProviderCapabilities",
    "get_provider",
]
