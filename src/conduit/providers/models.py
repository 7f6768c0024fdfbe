"""Domain models for the provider transport layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from conduit.types import TokenUsage


@dataclass(frozen=True)
class ToolCall:
    """A tool call requested by the model."""

    id: str
    name: str
    #: JSON-encoded argument object, as most vendors deliver it.
    arguments: str


@dataclass(frozen=True)
class Message:
    """A vendor-neutral conversational message.

    ``tool`` messages answer the assistant tool call whose id is
    ``tool_call_id``.
    """

    role: Literal["user", "assistant", "tool"]
    content: str = ""
    tool_call_id: str | None = None
    tool_calls: tuple[ToolCall, ...] | None = None
    #: Tool name for ``tool`` messages (some vendors key results by name).
    name: str | None = None


@dataclass
class ProviderResponse:
    """A standardized response from one vendor call."""

    text: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    tool_calls: list[ToolCall] = field(default_factory=list)
