"""OpenAI provider implementation (Chat Completions API)."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from conduit.errors import APIError
from conduit.providers._errors import wrap_provider_error
from conduit.providers.base import ProviderCapabilities
from conduit.providers.models import Message, ProviderResponse, ToolCall
from conduit.types import TokenUsage

if TYPE_CHECKING:
    from conduit.types import Request, ToolChoice, ToolDefinition


class OpenAIProvider:
    """OpenAI Chat Completions provider.

    Also serves OpenAI-compatible vendors through ``base_url``.
    """

    name = "openai"
    default_model = "gpt-4o"
    models = ("gpt-4o", "gpt-4o-mini")
    base_url: str | None = None

    def __init__(self, api_key: str) -> None:
        """Initialize with an API key."""
        self.api_key = api_key
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazily initialize and return the OpenAI client."""
        if self._client is None:
            try:
                from openai import AsyncOpenAI
            except ImportError as e:
                raise APIError(
                    "openai package not installed",
                    hint="uv pip install openai",
                ) from e
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    @property
    def capabilities(self) -> ProviderCapabilities:
        """Return supported feature flags."""
        return ProviderCapabilities(system_message=True, tool_choice=True)

    def resolve_model(self, requested: str | None) -> str:
        return requested or self.default_model

    def format_messages(
        self, messages: list[Message], system_prompt: str
    ) -> list[dict[str, Any]]:
        formatted: list[dict[str, Any]] = []
        if system_prompt:
            formatted.append({"role": "system", "content": system_prompt})
        for item in messages:
            if item.role == "tool":
                formatted.append(
                    {
                        "role": "tool",
                        "tool_call_id": item.tool_call_id or "",
                        "content": item.content,
                    }
                )
            elif item.role == "assistant" and item.tool_calls:
                formatted.append(
                    {
                        "role": "assistant",
                        "content": item.content or None,
                        "tool_calls": [
                            {
                                "id": tc.id,
                                "type": "function",
                                "function": {
                                    "name": tc.name,
                                    "arguments": tc.arguments,
                                },
                            }
                            for tc in item.tool_calls
                        ],
                    }
                )
            else:
                formatted.append({"role": item.role, "content": item.content})
        return formatted

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.id,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]

    def encode_tool_choice(self, choice: ToolChoice) -> Any | None:
        forced = choice.forced_tool
        if forced is not None:
            return {"type": "function", "function": {"name": forced}}
        return choice.mode if choice.mode in ("auto", "none") else "auto"

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
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if tools:
            payload["tools"] = tools
            encoded = self.encode_tool_choice(tool_choice)
            if encoded is not None:
                payload["tool_choice"] = encoded
        return payload

    async def send(self, payload: dict[str, Any]) -> ProviderResponse:
        """Issue one chat completion call."""
        client = self._get_client()
        try:
            response = await client.chat.completions.create(**payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.name,
                phase="generate",
                message=f"{self.name.capitalize()} generate failed",
            ) from e
        return self._parse_response(response)

    def _parse_response(self, response: Any) -> ProviderResponse:
        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None

        text = getattr(message, "content", None) or ""
        tool_calls = [
            ToolCall(
                id=getattr(tc, "id", "") or "",
                name=tc.function.name,
                arguments=tc.function.arguments or "{}",
            )
            for tc in (getattr(message, "tool_calls", None) or [])
        ]
        return ProviderResponse(
            text=self._clean_text(text),
            usage=_parse_usage(getattr(response, "usage", None)),
            tool_calls=tool_calls,
        )

    def _clean_text(self, text: str) -> str:
        return text

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        await client.close()


def _parse_usage(usage_raw: Any) -> TokenUsage:
    """Missing usage or fields count as zero."""
    if usage_raw is None:
        return TokenUsage()
    prompt = int(getattr(usage_raw, "prompt_tokens", 0) or 0)
    completion = int(getattr(usage_raw, "completion_tokens", 0) or 0)
    total = int(getattr(usage_raw, "total_tokens", 0) or 0)
    return TokenUsage(prompt=prompt, completion=completion, total=total)
