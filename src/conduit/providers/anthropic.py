"""Anthropic Messages API provider."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

from conduit.constants import EMPTY_CONVERSATION_SENTINEL
from conduit.errors import APIError
from conduit.providers._errors import wrap_provider_error
from conduit.providers.base import ProviderCapabilities
from conduit.providers.models import Message, ProviderResponse, ToolCall
from conduit.types import TokenUsage

if TYPE_CHECKING:
    from conduit.types import Request, ToolChoice, ToolDefinition

_ANTHROPIC_MAX_TOKENS = 1024
_ANTHROPIC_TEMPERATURE = 0.7


class AnthropicProvider:
    """Anthropic Messages API provider.

    The system prompt is a top-level field rather than a message, so the
    normalizer injects it as a user turn when the conversation is empty.
    """

    name = "anthropic"
    default_model = "claude-3-7-sonnet-20250219"
    models = ("claude-3-5-sonnet-20240620", "claude-3-7-sonnet-20250219")

    def __init__(self, api_key: str) -> None:
        """Initialize with an API key."""
        self.api_key = api_key
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the async Anthropic client."""
        if self._client is None:
            try:
                from anthropic import AsyncAnthropic
            except ImportError as e:
                raise APIError(
                    "anthropic package not installed",
                    hint="uv pip install anthropic",
                ) from e
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(system_message=False, tool_choice=True)

    def resolve_model(self, requested: str | None) -> str:
        return requested or self.default_model

    def format_messages(
        self, messages: list[Message], system_prompt: str
    ) -> list[dict[str, Any]]:
        """Build the messages list; the system prompt goes in the payload.

        Anthropic requires strict user/assistant role alternation, so
        consecutive same-role messages are merged via ``_append_message``.
        """
        _ = system_prompt
        formatted: list[dict[str, Any]] = []
        for item in messages:
            if item.role == "tool":
                _append_message(
                    formatted,
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": item.tool_call_id or "",
                                "content": item.content or "",
                            }
                        ],
                    },
                )
            elif item.role == "assistant":
                blocks: list[dict[str, Any]] = []
                if item.content:
                    blocks.append({"type": "text", "text": item.content})
                for tc in item.tool_calls or ():
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": tc.id,
                            "name": tc.name,
                            "input": _loads_arguments(tc.arguments),
                        }
                    )
                if blocks:
                    _append_message(formatted, {"role": "assistant", "content": blocks})
            elif item.content:
                _append_message(
                    formatted,
                    {"role": "user", "content": [{"type": "text", "text": item.content}]},
                )
        if not formatted:
            # Every turn was empty; the API needs at least one user message.
            formatted.append(
                {
                    "role": "user",
                    "content": [{"type": "text", "text": EMPTY_CONVERSATION_SENTINEL}],
                }
            )
        return formatted

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Convert tool definitions to Anthropic format (parameters → input_schema)."""
        anthropic_tools: list[dict[str, Any]] = []
        for t in tools:
            input_schema: dict[str, Any] = {
                "type": "object",
                "properties": t.parameters.get("properties", {}),
            }
            if "required" in t.parameters:
                input_schema["required"] = t.parameters["required"]
            anthropic_tools.append(
                {
                    "name": t.id,
                    "description": t.description,
                    "input_schema": input_schema,
                }
            )
        return anthropic_tools

    def encode_tool_choice(self, choice: ToolChoice) -> dict[str, str] | None:
        """Map a directive to Anthropic format; ``auto`` omits the field."""
        forced = choice.forced_tool
        if forced is not None:
            return {"type": "tool", "name": forced}
        if choice.mode == "none":
            return {"type": "none"}
        return None

    def build_payload(
        self,
        *,
        request: Request,
        messages: list[Message],
        system_prompt: str,
        tools: list[Any],
        tool_choice: ToolChoice,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.resolve_model(request.model),
            "messages": self.format_messages(messages, system_prompt),
            "max_tokens": request.max_tokens or _ANTHROPIC_MAX_TOKENS,
            "temperature": (
                request.temperature
                if request.temperature is not None
                else _ANTHROPIC_TEMPERATURE
            ),
        }
        if system_prompt:
            payload["system"] = system_prompt
        if tools:
            payload["tools"] = tools
            encoded = self.encode_tool_choice(tool_choice)
            if encoded is not None:
                payload["tool_choice"] = encoded
        return payload

    async def send(self, payload: dict[str, Any]) -> ProviderResponse:
        """Generate a response using Anthropic's Messages API."""
        client = self._get_client()
        try:
            response = await client.messages.create(**payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.name,
                phase="generate",
                message="Anthropic generate failed",
            ) from e
        return _parse_response(response)

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _parse_response(response: Any) -> ProviderResponse:
    """Parse an Anthropic Message response into ProviderResponse."""
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []

    for block in getattr(response, "content", None) or []:
        block_type = getattr(block, "type", None)
        if block_type == "text":
            text_parts.append(getattr(block, "text", ""))
        elif block_type == "tool_use":
            tool_calls.append(
                ToolCall(
                    id=getattr(block, "id", ""),
                    name=getattr(block, "name", ""),
                    arguments=json.dumps(getattr(block, "input", {}) or {}),
                )
            )

    usage = TokenUsage()
    usage_raw = getattr(response, "usage", None)
    if usage_raw is not None:
        input_tokens = int(getattr(usage_raw, "input_tokens", 0) or 0)
        output_tokens = int(getattr(usage_raw, "output_tokens", 0) or 0)
        usage = TokenUsage(
            prompt=input_tokens,
            completion=output_tokens,
            total=input_tokens + output_tokens,
        )

    return ProviderResponse(
        text="\n".join(text_parts),
        usage=usage,
        tool_calls=tool_calls,
    )


def _loads_arguments(arguments: str) -> dict[str, Any]:
    try:
        args = json.loads(arguments)
    except (TypeError, ValueError):
        return {}
    return args if isinstance(args, dict) else {}


def _append_message(messages: list[dict[str, Any]], msg: dict[str, Any]) -> None:
    """Append *msg*, merging into the previous message when roles match.

    Consecutive same-role messages (e.g. the context turn followed by the
    first user turn) are merged into one message's content blocks.
    """
    if messages and messages[-1]["role"] == msg["role"]:
        messages[-1]["content"] = messages[-1]["content"] + msg["content"]
    else:
        messages.append(msg)
