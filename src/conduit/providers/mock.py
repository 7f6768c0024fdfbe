"""Mock provider for offline use and testing."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from conduit.providers.base import ProviderCapabilities
from conduit.providers.models import Message, ProviderResponse
from conduit.types import TokenUsage

if TYPE_CHECKING:
    from conduit.types import Request, ToolChoice, ToolDefinition


class MockProvider:
    """Mock provider returning synthetic responses without API calls.

    Never requests tools, so a request against it always completes in a
    single model call.
    """

    name = "mock"
    default_model = "mock-model"
    models = ("mock-model",)

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(system_message=True, tool_choice=False)

    def resolve_model(self, requested: str | None) -> str:
        return requested or self.default_model

    def format_messages(
        self, messages: list[Message], system_prompt: str
    ) -> list[dict[str, Any]]:
        formatted = [{"role": "system", "content": system_prompt}] if system_prompt else []
        formatted.extend({"role": m.role, "content": m.content} for m in messages)
        return formatted

    def format_tools(self, tools: list[ToolDefinition]) -> list[str]:
        return [t.id for t in tools]

    def encode_tool_choice(self, choice: ToolChoice) -> str | None:  # noqa: ARG002
        return None

    def build_payload(
        self,
        *,
        request: Request,
        messages: list[Message],
        system_prompt: str,
        tools: list[Any],
        tool_choice: ToolChoice,  # noqa: ARG002
    ) -> dict[str, Any]:
        return {
            "model": self.resolve_model(request.model),
            "messages": self.format_messages(messages, system_prompt),
            "tools": tools,
        }

    async def send(self, payload: dict[str, Any]) -> ProviderResponse:
        """Return a deterministic mock response.

        Echo the last non-empty user message, falling back to the system
        prompt.
        """
        messages = payload.get("messages", [])
        texts = [
            m["content"]
            for m in messages
            if m["role"] in ("user", "system") and str(m["content"]).strip()
        ]
        text = texts[-1] if texts else ""
        return ProviderResponse(
            text=f"echo: {text[:100]}",
            usage=TokenUsage(prompt=10, completion=10, total=20),
        )

    async def aclose(self) -> None:
        """Nothing to close."""
