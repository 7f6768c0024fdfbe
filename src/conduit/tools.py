"""Tool execution seam.

The execution loop never runs tools itself; it calls a ``ToolExecutor``.
Executors report ordinary tool failures as ``ToolResult(success=False)``
instead of raising.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import inspect
import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool execution."""

    success: bool
    output: Any = None
    error: str | None = None


@runtime_checkable
class ToolExecutor(Protocol):
    """Anything that can run a named tool with arguments."""

    async def execute(self, tool_name: str, args: dict[str, Any]) -> ToolResult:
        """Run *tool_name* and return its result."""
        ...


class CallableToolExecutor:
    """Execute tools backed by plain or async Python callables.

    Callables receive the merged arguments as keyword arguments. A raising
    callable yields ``success=False`` with the error message.
    """

    def __init__(self, tools: Mapping[str, Callable[..., Any]]) -> None:
        self._tools = dict(tools)

    async def execute(self, tool_name: str, args: dict[str, Any]) -> ToolResult:
        fn = self._tools.get(tool_name)
        if fn is None:
            return ToolResult(success=False, error=f"Unknown tool: {tool_name}")
        try:
            output = fn(**args)
            if inspect.isawaitable(output):
                output = await output
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("Tool %s failed: %s", tool_name, exc)
            return ToolResult(success=False, error=f"{type(exc).__name__}: {exc}")
        return ToolResult(success=True, output=output)
