"""Response envelope building and failure timing."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from conduit.errors import ConduitError, ProviderError

if TYPE_CHECKING:
    from conduit.loop import ExecutionState
    from conduit.timing import Timeline
    from conduit.types import ResponseEnvelope, TimingSummary

logger = logging.getLogger(__name__)

# Greedy: first "{" through last "}". Prose after the JSON that also holds
# braces will be swept into the match.
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


def extract_json_block(content: str) -> str:
    """Isolate the JSON object embedded in *content*, best effort.

    Content without both braces, or with no match, is returned unchanged.
    """
    if "{" not in content or "}" not in content:
        return content
    try:
        match = _JSON_BLOCK.search(content)
    except (TypeError, re.error) as exc:
        logger.error("Error extracting JSON from response: %s", exc)
        return content
    if match is None:
        logger.error("No JSON object found in response content")
        return content
    return match.group(0)


def build_response(state: ExecutionState, model: str) -> ResponseEnvelope:
    """Assemble the envelope for a completed request."""
    timing: TimingSummary = {
        **state.timeline.summary(),  # type: ignore[typeddict-item]
        "model_time": state.model_time,
        "tools_time": state.tools_time,
        "first_response_time": state.first_response_time,
        "iterations": state.iteration_count + 1,
        "time_segments": [s.to_dict() for s in state.timeline.segments],
    }
    envelope: ResponseEnvelope = {
        "content": state.content,
        "model": model,
        "tokens": state.tokens.to_dict(),
        "timing": timing,
    }
    if state.tool_calls:
        envelope["tool_calls"] = [c.to_dict() for c in state.tool_calls]
        envelope["tool_results"] = list(state.tool_results)
    return envelope


def attach_timing(
    exc: BaseException, timeline: Timeline, *, provider: str | None = None
) -> ProviderError:
    """Wrap *exc* with timing up to now. Callers ``raise ... from exc``."""
    hint = exc.hint if isinstance(exc, ConduitError) else None
    return ProviderError(
        str(exc) or type(exc).__name__,
        timing=timeline.summary(),
        hint=hint,
        provider=provider,
    )
