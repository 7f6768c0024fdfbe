"""Shared provider-side error helpers.

Vendor SDKs raise their own exception types; adapters map them into
``APIError`` with a status code and a hint so callers never have to parse
messages.
"""

from __future__ import annotations

import asyncio

import httpx

from conduit.errors import APIError, _walk_exception_chain

_API_KEY_ENV_VARS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status", "code"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


def _is_network_error(exc: BaseException) -> bool:
    return any(
        isinstance(e, (httpx.TimeoutException, httpx.RequestError, TimeoutError))
        for e in _walk_exception_chain(exc)
    )


def _derive_hint(provider: str, status_code: int | None, exc: BaseException) -> str | None:
    """Generate a hint where the cause is actionable."""
    cause_lower = str(exc).lower()
    if status_code in {401, 403} or (
        status_code == 400 and ("api key" in cause_lower or "api_key" in cause_lower)
    ):
        env_var = _API_KEY_ENV_VARS.get(provider, "the provider API key")
        return f"Check credentials/permissions (try setting {env_var} or Request.api_key)."
    if status_code == 429:
        return "The vendor is rate limiting this key; retry the request later."
    if status_code is None and _is_network_error(exc):
        return "The vendor could not be reached or timed out; check connectivity."
    return None


def wrap_provider_error(
    exc: BaseException,
    *,
    provider: str,
    phase: str,
    message: str | None = None,
) -> APIError:
    """Map vendor SDK exceptions into APIError with stable metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.provider is None:
            exc.provider = provider
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    msg = message or f"{provider} {phase} failed"
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    cause = str(exc)
    return APIError(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=_derive_hint(provider, status_code, exc),
        status_code=status_code,
        provider=provider,
        phase=phase,
    )
