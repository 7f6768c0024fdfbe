"""Configuration boundary tests."""

from __future__ import annotations

import pytest

from conduit.config import Config
from conduit.errors import ConfigurationError

pytestmark = pytest.mark.unit


def test_config_auto_resolves_api_key_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """API key should be auto-resolved from the provider's variable."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "env-key")

    cfg = Config(provider="anthropic")

    assert cfg.api_key == "env-key"
    assert cfg.provider_id == "anthropic"


def test_explicit_api_key_takes_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")

    cfg = Config(provider="openai", api_key="explicit-key")

    assert cfg.api_key == "explicit-key"


@pytest.mark.parametrize(
    ("provider", "env_var"),
    [
        ("openai", "OPENAI_API_KEY"),
        ("deepseek", "DEEPSEEK_API_KEY"),
        ("anthropic", "ANTHROPIC_API_KEY"),
        ("gemini", "GEMINI_API_KEY"),
    ],
)
def test_missing_api_key_raises_clear_error(provider: str, env_var: str) -> None:
    """Missing API key without mock mode must fail clearly."""
    with pytest.raises(ConfigurationError, match="API key required") as exc:
        Config(provider=provider)  # type: ignore[arg-type]

    assert exc.value.hint is not None
    assert env_var in exc.value.hint


def test_mock_mode_does_not_require_api_key() -> None:
    cfg = Config(provider="gemini", use_mock=True)

    assert cfg.api_key is None
    assert cfg.provider_id == "mock"


def test_unknown_provider_raises_error() -> None:
    with pytest.raises(ConfigurationError, match="Unknown provider"):
        Config(provider="unknown", use_mock=True)  # type: ignore[arg-type]


def test_config_str_and_repr_redact_api_key() -> None:
    """String representations must not leak secrets."""
    secret = "top-secret-key"
    cfg = Config(provider="deepseek", api_key=secret)

    assert secret not in str(cfg)
    assert secret not in repr(cfg)
    assert "[REDACTED]" in str(cfg)


def test_request_carries_model_and_credential() -> None:
    cfg = Config(provider="openai", model="gpt-4o-mini", api_key="k")

    request = cfg.request(system_prompt="Be terse.", context="Hi")

    assert request.model == "gpt-4o-mini"
    assert request.api_key == "k"
    assert request.system_prompt == "Be terse."
    assert "api_key" not in repr(request)


def test_request_fields_override_config_model() -> None:
    cfg = Config(provider="openai", model="gpt-4o-mini", api_key="k")

    assert cfg.request(model="gpt-4o").model == "gpt-4o"
