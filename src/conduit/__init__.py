"""Conduit: one tool-calling execution loop over many LLM vendors.

Public API:
    - execute_request(): Run a request to completion, tools included
    - Request / ToolDefinition / Turn: Provider-agnostic inputs
    - Config: Credential and provider resolution
    - get_provider(): Vendor adapter lookup by id
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from conduit.config import Config
from conduit.errors import APIError, ConduitError, ConfigurationError, ProviderError
from conduit.loop import run_loop
from conduit.normalize import normalize
from conduit.providers import get_provider
from conduit.result import attach_timing, build_response
from conduit.timing import Timeline
from conduit.tool_usage import prepare_tools
from conduit.tools import CallableToolExecutor, ToolExecutor, ToolResult
from conduit.types import (
    FunctionCall,
    Request,
    ResponseEnvelope,
    ToolDefinition,
    Turn,
)

if TYPE_CHECKING:
    from conduit.providers.base import Provider

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("conduit-llm")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("conduit").addHandler(logging.NullHandler())

logger = logging.getLogger(__name__)


async def execute_request(
    request: Request,
    *,
    provider: Provider | str,
    executor: ToolExecutor,
) -> ResponseEnvelope:
    """Run *request* against *provider*, executing tool calls via *executor*.

    Args:
        request: The provider-agnostic request.
        provider: An adapter instance, or a provider id such as ``"anthropic"``.
            Adapters created here from an id are closed before returning.
        executor: Runs the tools the model asks for.

    Returns:
        ResponseEnvelope with content, token totals, tool records, and timing.

    Raises:
        ConfigurationError: The request carries no API key. Nothing has been
            sent and no timing exists yet.
        ProviderError: Anything failed after execution started; carries
            ``timing`` and chains the original error.

    Example:
        executor = CallableToolExecutor({"get_weather": get_weather})
        envelope = await execute_request(request, provider="openai", executor=executor)
        print(envelope["content"])
    """
    owned = isinstance(provider, str)
    name = provider if owned else getattr(provider, "name", None)
    # The mock adapter never talks to a vendor, whether given by id or instance.
    if not request.api_key and name != "mock":
        raise ConfigurationError(
            f"API key is required for {name or 'provider'}",
            hint="Pass Request(api_key=...) or build the request with Config.request().",
        )
    adapter = get_provider(provider, request.api_key) if owned else provider

    timeline = Timeline()
    try:
        prepared = prepare_tools(request.tools, provider=adapter.name)
        normalized = normalize(request, adapter, tools=prepared.tools)
        state = await run_loop(
            adapter, request, normalized, prepared, executor, timeline=timeline
        )
        return build_response(state, adapter.resolve_model(request.model))
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        error = attach_timing(exc, timeline, provider=adapter.name)
        logger.error(
            "Error in %s request: %s",
            adapter.name,
            exc,
            extra={"provider": adapter.name, "duration": error.timing["duration"]},
        )
        raise error from exc
    finally:
        if owned:
            try:
                await adapter.aclose()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                # Cleanup should never mask the primary failure.
                logger.warning("Provider cleanup failed: %s", exc)


__all__ = [
    "APIError",
    "CallableToolExecutor",
    "Config",
    "ConduitError",
    "ConfigurationError",
    "FunctionCall",
    "ProviderError",
    "Request",
    "ResponseEnvelope",
    "ToolDefinition",
    "ToolExecutor",
    "ToolResult",
    "Turn",
    "execute_request",
    "get_provider",
]
