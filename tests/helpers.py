"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: it exists to prevent test suites from
growing lots of one-off provider subclasses as coverage expands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from conduit.providers.base import ProviderCapabilities
from conduit.providers.models import Message, ProviderResponse, ToolCall
from conduit.tools import ToolResult
from conduit.types import Request, TokenUsage, ToolChoice


def tool_response(
    *calls: tuple[str, str], text: str = "", total_tokens: int = 0
) -> ProviderResponse:
    """A response invoking ``(name, json_arguments)`` pairs in order."""
    return ProviderResponse(
        text=text,
        usage=TokenUsage(total=total_tokens),
        tool_calls=[
            ToolCall(id=f"vendor-{i}", name=name, arguments=arguments)
            for i, (name, arguments) in enumerate(calls)
        ],
    )


def text_response(text: str, **usage: int) -> ProviderResponse:
    return ProviderResponse(text=text, usage=TokenUsage(**usage))


@dataclass
class ScriptedProvider:
    """Provider double that returns a scripted sequence of results/exceptions.

    Once the script runs out, ``default`` is returned for every further call.
    Each call's directive and message history are recorded for assertions.
    """

    script: list[ProviderResponse | BaseException] = field(default_factory=list)
    default: ProviderResponse = field(default_factory=lambda: text_response("ok"))
    system_message: bool = True
    name: str = "scripted"
    default_model: str = "scripted-model"
    models: tuple[str, ...] = ("scripted-model",)
    send_calls: int = 0
    tool_choices: list[ToolChoice] = field(default_factory=list)
    histories: list[list[Message]] = field(default_factory=list)
    system_prompts: list[str] = field(default_factory=list)
    closed: bool = False

    @property
    def capabilities(self) -> ProviderCapabilities:
        return ProviderCapabilities(system_message=self.system_message)

    def resolve_model(self, requested: str | None) -> str:
        return requested or self.default_model

    def format_messages(self, messages: list[Message], system_prompt: str) -> list[Any]:
        _ = system_prompt
        return list(messages)

    def format_tools(self, tools: list[Any]) -> list[Any]:
        return [t.id for t in tools]

    def encode_tool_choice(self, choice: ToolChoice) -> ToolChoice:
        return choice

    def build_payload(
        self,
        *,
        request: Request,
        messages: list[Message],
        system_prompt: str,
        tools: list[Any],
        tool_choice: ToolChoice,
    ) -> dict[str, Any]:
        return {
            "model": self.resolve_model(request.model),
            "messages": self.format_messages(messages, system_prompt),
            "system": system_prompt,
            "tools": tools,
            "tool_choice": tool_choice,
        }

    async def send(self, payload: dict[str, Any]) -> ProviderResponse:
        self.send_calls += 1
        self.tool_choices.append(payload["tool_choice"])
        self.histories.append(list(payload["messages"]))
        self.system_prompts.append(payload["system"])
        if not self.script:
            return self.default
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class ScriptedExecutor:
    """Tool executor double keyed by tool name.

    Values are a ``ToolResult`` or an exception to raise. Unlisted tools
    succeed with ``{"ok": True}``.
    """

    results: dict[str, ToolResult | BaseException] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def execute(self, tool_name: str, args: dict[str, Any]) -> ToolResult:
        self.calls.append((tool_name, args))
        outcome = self.results.get(tool_name, ToolResult(success=True, output={"ok": True}))
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome
