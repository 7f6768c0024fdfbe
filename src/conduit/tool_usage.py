"""Tool-usage policy and forced-tool tracking.

``prepare_tools`` turns per-tool usage controls into the tool set and the
initial directive. ``track_forced_tool_usage`` and ``next_tool_choice`` then
relax that directive as forced tools actually fire, so a policy like "use A,
then B, then let the model decide" plays out across iterations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING

from conduit.types import ToolChoice

if TYPE_CHECKING:
    from collections.abc import Iterable

    from conduit.types import ToolDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedTools:
    """Tools offered to the vendor plus the initial directive."""

    tools: list[ToolDefinition]
    tool_choice: ToolChoice
    forced_tools: tuple[str, ...] = ()


@dataclass(frozen=True)
class ForcedToolUsage:
    """Tracker output. The caller carries ``used_forced_tools`` forward."""

    has_used_forced_tool: bool = False
    used_forced_tools: frozenset[str] = field(default_factory=frozenset)


def prepare_tools(
    tools: Iterable[ToolDefinition], *, provider: str | None = None
) -> PreparedTools:
    """Filter tools by usage control and pick the initial directive."""
    available = [t for t in tools if t.usage_control != "none"]
    forced = tuple(t.id for t in available if t.usage_control == "force")

    if not available:
        choice = ToolChoice.none()
    elif len(forced) == 1:
        choice = ToolChoice.force(forced[0])
    elif forced:
        choice = ToolChoice.sequence(forced)
    else:
        choice = ToolChoice.auto()

    if forced:
        logger.info(
            "Forcing tool usage: %s",
            ", ".join(forced),
            extra={"provider": provider, "tool_choice": choice.mode},
        )
    elif available:
        logger.info(
            "Using tool_choice mode: %s",
            choice.mode,
            extra={"provider": provider, "tool_count": len(available)},
        )
    return PreparedTools(tools=available, tool_choice=choice, forced_tools=forced)


def track_forced_tool_usage(
    observed: Iterable[str],
    tool_choice: ToolChoice,
    forced_tools: Iterable[str],
    already_used: Iterable[str] = (),
) -> ForcedToolUsage:
    """Report whether the active forced tool was invoked.

    Only the tool the directive was forcing counts; merely being declared or
    being invoked under a different directive does not.
    """
    used = frozenset(already_used)
    target = tool_choice.forced_tool
    if target is None or target not in set(forced_tools):
        return ForcedToolUsage(False, used)
    if target in set(observed):
        logger.info("Forced tool %s was used", target)
        return ForcedToolUsage(True, used | {target})
    return ForcedToolUsage(False, used)


def next_tool_choice(
    current: ToolChoice,
    usage: ForcedToolUsage,
    forced_tools: Iterable[str],
) -> ToolChoice:
    """Directive for the next vendor call.

    Once a forced tool has fired, force the first unused forced tool in order,
    or relax to ``auto`` when none remain. Unforced directives pass through.
    """
    if not current.is_forced or not usage.has_used_forced_tool:
        return current
    remaining = [t for t in forced_tools if t not in usage.used_forced_tools]
    if remaining:
        logger.info("Forcing next tool: %s", remaining[0])
        return ToolChoice.force(remaining[0])
    logger.info("All forced tools have been used, relaxing tool_choice to auto")
    return ToolChoice.auto()
