"""Exception hierarchy for Conduit."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator


class ConduitError(Exception):
    """Base exception for all Conduit errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(ConduitError):
    """Configuration validation or resolution failed.

    Always raised before any network call is issued.
    """


class APIError(ConduitError):
    """A vendor API call failed (network, auth, malformed payload).

    Adapters attach the HTTP status and the phase that failed so callers can
    tell an auth problem from a timeout without substring matching.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class ProviderError(ConduitError):
    """A request failed after execution started.

    ``timing`` holds ``start_time``, ``end_time`` (ISO-8601) and ``duration``
    (ms) up to the failure point. The original exception is chained as
    ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        *,
        timing: dict[str, Any],
        hint: str | None = None,
        provider: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.timing = timing
        self.provider = provider


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, with cycle protection."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
