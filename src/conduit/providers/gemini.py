"""Gemini provider implementation."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any
import uuid

from conduit.constants import EMPTY_CONVERSATION_SENTINEL
from conduit.errors import APIError
from conduit.providers._errors import wrap_provider_error
from conduit.providers.base import ProviderCapabilities
from conduit.providers.models import Message, ProviderResponse, ToolCall
from conduit.types import TokenUsage

if TYPE_CHECKING:
    from conduit.types import Request, ToolChoice, ToolDefinition


class GeminiProvider:
    """Google Gemini API provider."""

    name = "gemini"
    default_model = "gemini-2.0-flash"
    models = ("gemini-2.0-flash", "gemini-2.5-flash")

    def __init__(self, api_key: str) -> None:
        """Create provider with an API key."""
        self.api_key = api_key
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazy-initialize the Gemini client."""
        if self._client is None:
            try:
                from google import genai
            except ImportError as e:
                raise APIError(
                    "google-genai package not installed",
                    hint="uv pip install google-genai",
                ) from e
            self._client = genai.Client(api_key=self.api_key)
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
        """Build ``contents``; the system prompt goes in ``system_instruction``.

        Function responses are keyed by function name, not call id, so the
        names of earlier calls are remembered while walking the history.
        """
        _ = system_prompt
        contents: list[dict[str, Any]] = []
        call_id_to_name: dict[str, str] = {}
        for item in messages:
            if item.role == "tool":
                call_id = item.tool_call_id
                name = item.name or "unknown_tool"
                if isinstance(call_id, str) and call_id in call_id_to_name:
                    name = call_id_to_name[call_id]
                contents.append(
                    {
                        "role": "user",
                        "parts": [
                            {
                                "function_response": {
                                    "name": name,
                                    "response": _response_payload(item.content),
                                }
                            }
                        ],
                    }
                )
            elif item.role == "assistant":
                parts: list[dict[str, Any]] = []
                if item.content:
                    parts.append({"text": item.content})
                for tc in item.tool_calls or ():
                    call_id_to_name[tc.id] = tc.name
                    try:
                        args = json.loads(tc.arguments)
                    except ValueError:
                        args = {}
                    parts.append({"function_call": {"name": tc.name, "args": args}})
                if parts:
                    contents.append({"role": "model", "parts": parts})
            elif item.content:
                contents.append({"role": "user", "parts": [{"text": item.content}]})
        if not contents:
            # Every turn was empty; the API needs at least one user turn.
            contents.append(
                {"role": "user", "parts": [{"text": EMPTY_CONVERSATION_SENTINEL}]}
            )
        return contents

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Declare all tools as function declarations of a single Tool."""
        if not tools:
            return []
        return [
            {
                "function_declarations": [
                    {
                        "name": t.id,
                        "description": t.description,
                        "parameters": t.parameters,
                    }
                    for t in tools
                ]
            }
        ]

    def encode_tool_choice(self, choice: ToolChoice) -> dict[str, Any] | None:
        forced = choice.forced_tool
        if forced is not None:
            return {
                "function_calling_config": {
                    "mode": "ANY",
                    "allowed_function_names": [forced],
                }
            }
        mode = "NONE" if choice.mode == "none" else "AUTO"
        return {"function_calling_config": {"mode": mode}}

    def build_payload(
        self,
        *,
        request: Request,
        messages: list[Message],
        system_prompt: str,
        tools: list[Any],
        tool_choice: ToolChoice,
    ) -> dict[str, Any]:
        config: dict[str, Any] = {}
        if system_prompt:
            config["system_instruction"] = system_prompt
        if request.temperature is not None:
            config["temperature"] = request.temperature
        if request.max_tokens is not None:
            config["max_output_tokens"] = request.max_tokens
        if tools:
            config["tools"] = tools
            encoded = self.encode_tool_choice(tool_choice)
            if encoded is not None:
                config["tool_config"] = encoded
        return {
            "model": self.resolve_model(request.model),
            "contents": self.format_messages(messages, system_prompt),
            "config": config,
        }

    async def send(self, payload: dict[str, Any]) -> ProviderResponse:
        """Generate content from the Gemini model."""
        client = self._get_client()
        from google.genai import types

        try:
            response = await client.aio.models.generate_content(
                model=payload["model"],
                contents=payload["contents"],
                config=types.GenerateContentConfig(**payload["config"]),
            )
            if not response:
                raise APIError("Gemini returned an empty response.")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise wrap_provider_error(
                e,
                provider=self.name,
                phase="generate",
                message="Gemini generate failed",
            ) from e
        return self._parse_response(response)

    def _parse_response(self, response: Any) -> ProviderResponse:
        """Parse a Gemini response into a ProviderResponse."""
        tool_calls: list[ToolCall] = []
        for fc in getattr(response, "function_calls", None) or []:
            call_id = fc.id or f"call_{uuid.uuid4().hex[:8]}"
            tool_calls.append(
                ToolCall(
                    id=str(call_id),
                    name=str(fc.name),
                    arguments=json.dumps(fc.args or {}),
                )
            )

        # None when the response holds only function calls.
        text = getattr(response, "text", None) or ""

        usage = TokenUsage()
        um = getattr(response, "usage_metadata", None)
        if um is not None:
            usage = TokenUsage(
                prompt=int(getattr(um, "prompt_token_count", 0) or 0),
                completion=int(getattr(um, "candidates_token_count", 0) or 0),
                total=int(getattr(um, "total_token_count", 0) or 0),
            )

        return ProviderResponse(text=text, usage=usage, tool_calls=tool_calls)

    async def aclose(self) -> None:
        """Close underlying async client resources."""
        client = self._client
        if client is None:
            return
        self._client = None
        aio = getattr(client, "aio", None)
        aclose = getattr(aio, "aclose", None)
        if callable(aclose):
            await aclose()


def _response_payload(content: str) -> dict[str, Any]:
    """Function responses must be JSON objects; wrap anything else."""
    if not content:
        return {}
    try:
        parsed = json.loads(content)
    except ValueError:
        return {"result": content}
    return parsed if isinstance(parsed, dict) else {"result": parsed}
