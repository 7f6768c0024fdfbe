"""Provider protocol: the vendor-capability interface the loop drives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from conduit.providers.models import Message, ProviderResponse
    from conduit.types import Request, ToolChoice, ToolDefinition


@dataclass(frozen=True)
class ProviderCapabilities:
    """Feature flags exposed by providers."""

    #: The system prompt travels inside the message array.
    system_message: bool
    #: The vendor accepts a forced tool choice.
    tool_choice: bool = True


@runtime_checkable
class Provider(Protocol):
    """Minimal vendor adapter: translate wire formats and send one chat call.

    Adapters hold no per-request state; everything a request accumulates
    lives in the execution loop.
    """

    name: str
    default_model: str
    #: Known model ids, advertised for callers; not enforced.
    models: tuple[str, ...]

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Feature flags used by the normalizer."""
        ...

    def resolve_model(self, requested: str | None) -> str:
        """Return the model id actually sent to the vendor."""
        ...

    def format_messages(
        self, messages: list[Message], system_prompt: str
    ) -> list[dict[str, Any]]:
        """Translate neutral messages into the vendor's message array."""
        ...

    def format_tools(self, tools: list[ToolDefinition]) -> list[Any]:
        """Translate tool definitions into the vendor's tool schema."""
        ...

    def encode_tool_choice(self, choice: ToolChoice) -> Any | None:
        """Encode a directive; ``None`` means omit the field."""
        ...

    def build_payload(
        self,
        *,
        request: Request,
        messages: list[Message],
        system_prompt: str,
        tools: list[Any],
        tool_choice: ToolChoice,
    ) -> dict[str, Any]:
        """Assemble the full keyword payload for one vendor call."""
        ...

    async def send(self, payload: dict[str, Any]) -> ProviderResponse:
        """Issue one vendor call and parse the response."""
        ...

    async def aclose(self) -> None:
        """Close underlying client resources."""
        ...
