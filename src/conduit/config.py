"""Configuration: frozen Config resolving provider, model, and credentials."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any, Literal

from dotenv import load_dotenv

from conduit.errors import ConfigurationError
from conduit.providers._errors import _API_KEY_ENV_VARS
from conduit.types import Request

load_dotenv()

ProviderName = Literal["openai", "deepseek", "anthropic", "gemini"]


@dataclass(frozen=True)
class Config:
    """Immutable provider configuration.

    API keys are auto-resolved from the provider's standard environment
    variable when not passed explicitly.

    Example:
        config = Config(provider="anthropic")
        # API key is automatically resolved from ANTHROPIC_API_KEY
        request = config.request(system_prompt="Be terse.", context="Hi")
    """

    provider: ProviderName
    #: Provider default when *None*.
    model: str | None = None
    api_key: str | None = None
    #: Route requests to the offline mock provider; no key needed.
    use_mock: bool = False

    def __post_init__(self) -> None:
        """Auto-resolve API key and validate configuration."""
        if self.provider not in _API_KEY_ENV_VARS:
            raise ConfigurationError(
                f"Unknown provider: {self.provider!r}",
                hint=f"Supported providers: {', '.join(sorted(_API_KEY_ENV_VARS))}",
            )

        if self.api_key is None and not self.use_mock:
            resolved_key = os.environ.get(_API_KEY_ENV_VARS[self.provider])
            object.__setattr__(self, "api_key", resolved_key)

        if not self.use_mock and not self.api_key:
            env_var = _API_KEY_ENV_VARS[self.provider]
            raise ConfigurationError(
                f"API key required for {self.provider}",
                hint=f"Set {env_var} environment variable or pass api_key=...",
            )

    @property
    def provider_id(self) -> str:
        """The provider id to execute against."""
        return "mock" if self.use_mock else self.provider

    def request(self, **fields: Any) -> Request:
        """Build a ``Request`` carrying this config's model and credential."""
        fields.setdefault("model", self.model)
        fields.setdefault("api_key", self.api_key)
        return Request(**fields)

    def __str__(self) -> str:
        """Return a redacted, developer-friendly representation."""
        return (
            f"Config(provider={self.provider!r}, model={self.model!r}, "
            f"api_key={'[REDACTED]' if self.api_key else None}, use_mock={self.use_mock})"
        )

    __repr__ = __str__
