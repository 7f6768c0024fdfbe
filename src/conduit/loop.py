"""The provider execution loop.

One vendor call, then as long as the model asks for tools: run them one at a
time, feed the results back, and call the vendor again. Every accumulator
for a request lives on its ``ExecutionState``; nothing is shared between
requests.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import itertools
import json
import logging
from typing import TYPE_CHECKING, Any
import uuid

from conduit.constants import MAX_ITERATIONS
from conduit.providers.models import Message, ProviderResponse, ToolCall
from conduit.result import extract_json_block
from conduit.timing import Timeline, measure, to_iso
from conduit.tool_usage import next_tool_choice, track_forced_tool_usage
from conduit.types import TokenUsage, ToolCallRecord, ToolChoice

if TYPE_CHECKING:
    from conduit.normalize import NormalizedRequest
    from conduit.providers.base import Provider
    from conduit.tool_usage import PreparedTools
    from conduit.tools import ToolExecutor
    from conduit.types import Request

logger = logging.getLogger(__name__)


@dataclass
class ExecutionState:
    """Mutable accumulators for a single request."""

    messages: list[Message]
    tool_choice: ToolChoice
    timeline: Timeline = field(default_factory=Timeline)
    content: str = ""
    tokens: TokenUsage = field(default_factory=TokenUsage)
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    tool_results: list[Any] = field(default_factory=list)
    used_forced_tools: frozenset[str] = frozenset()
    #: Follow-up calls made after the initial one.
    iteration_count: int = 0
    first_response_time: int = 0
    tools_time: int = 0
    _call_ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    @property
    def model_time(self) -> int:
        return self.timeline.total("model")

    def next_call_id(self, tool_name: str) -> str:
        """Correlation id pairing a tool invocation with its result."""
        return f"{tool_name}-{next(self._call_ids)}-{uuid.uuid4().hex[:6]}"

    def absorb(self, response: ProviderResponse) -> None:
        self.tokens = self.tokens + response.usage
        if response.text:
            self.content = response.text


async def run_loop(
    provider: Provider,
    request: Request,
    normalized: NormalizedRequest,
    prepared: PreparedTools,
    executor: ToolExecutor,
    *,
    timeline: Timeline | None = None,
) -> ExecutionState:
    """Drive *provider* until the model stops calling tools or the cap is hit.

    Vendor errors propagate unchanged; tool failures are logged and dropped.
    """
    state = ExecutionState(
        messages=list(normalized.messages),
        tool_choice=prepared.tool_choice,
        timeline=timeline or Timeline(),
    )

    response = await _call_model(provider, request, normalized, state, "Initial response")
    state.first_response_time = state.timeline.segments[-1].duration

    # The initial call is iteration zero, so at most MAX_ITERATIONS vendor calls.
    while response.tool_calls and state.iteration_count < MAX_ITERATIONS - 1:
        with measure() as batch:
            for call in response.tool_calls:
                await _run_tool(call, request, executor, state)
        state.tools_time += batch.duration

        usage = track_forced_tool_usage(
            (c.name for c in response.tool_calls),
            state.tool_choice,
            prepared.forced_tools,
            state.used_forced_tools,
        )
        state.used_forced_tools = usage.used_forced_tools
        state.tool_choice = next_tool_choice(
            state.tool_choice, usage, prepared.forced_tools
        )

        state.iteration_count += 1
        response = await _call_model(
            provider,
            request,
            normalized,
            state,
            f"Model response (iteration {state.iteration_count})",
        )

    if response.tool_calls:
        logger.warning(
            "Stopped after %d iterations with tool calls still pending",
            MAX_ITERATIONS,
            extra={"provider": provider.name},
        )

    state.content = extract_json_block(state.content)
    return state


async def _call_model(
    provider: Provider,
    request: Request,
    normalized: NormalizedRequest,
    state: ExecutionState,
    segment_name: str,
) -> ProviderResponse:
    payload = provider.build_payload(
        request=request,
        messages=state.messages,
        system_prompt=normalized.system_prompt,
        tools=normalized.tools,
        tool_choice=state.tool_choice,
    )
    with measure() as span:
        response = await provider.send(payload)
    state.timeline.record("model", segment_name, span)
    state.absorb(response)
    return response


async def _run_tool(
    call: ToolCall,
    request: Request,
    executor: ToolExecutor,
    state: ExecutionState,
) -> None:
    """Execute one tool call; only successes touch the state."""
    tool = request.find_tool(call.name)
    if tool is None:
        logger.warning("Skipping call to undeclared tool %s", call.name)
        return

    try:
        model_args = json.loads(call.arguments or "{}")
    except ValueError as exc:
        logger.error("Invalid arguments for tool %s: %s", call.name, exc)
        return
    if not isinstance(model_args, dict):
        logger.error("Arguments for tool %s are not an object", call.name)
        return
    args = {**tool.params, **model_args}

    try:
        with measure() as span:
            result = await executor.execute(call.name, args)
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        logger.error(
            "Error processing tool call: %s",
            exc,
            extra={"tool": call.name},
        )
        return
    if not result.success:
        logger.error(
            "Tool %s reported failure: %s",
            call.name,
            result.error,
            extra={"tool": call.name},
        )
        return
    try:
        result_content = json.dumps(result.output, default=str)
    except (TypeError, ValueError) as exc:
        logger.error(
            "Tool %s returned unserializable output: %s",
            call.name,
            exc,
            extra={"tool": call.name},
        )
        return

    state.timeline.record("tool", call.name, span)
    state.tool_calls.append(
        ToolCallRecord(
            name=call.name,
            arguments=args,
            start_time=to_iso(span.start_time),
            end_time=to_iso(span.end_time),
            duration=span.duration,
            result=result.output,
        )
    )
    state.tool_results.append(result.output)

    call_id = state.next_call_id(call.name)
    state.messages.append(
        Message(
            role="assistant",
            tool_calls=(
                ToolCall(id=call_id, name=call.name, arguments=json.dumps(model_args)),
            ),
        )
    )
    state.messages.append(
        Message(
            role="tool",
            content=result_content,
            tool_call_id=call_id,
            name=call.name,
        )
    )
