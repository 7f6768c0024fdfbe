"""Request normalization: provider-agnostic request to vendor-ready parts.

Produces the neutral message history the loop extends, the vendor tool
schema, and the final system prompt (including structured-output
instructions, which are the only mechanism used to coerce JSON because not
every vendor enforces schemas natively).
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import TYPE_CHECKING, Any
import uuid

from conduit.constants import EMPTY_CONVERSATION_SENTINEL, SCHEMA_PLACEHOLDERS
from conduit.providers.models import Message, ToolCall

if TYPE_CHECKING:
    from conduit.providers.base import Provider
    from conduit.types import Request, ToolDefinition, Turn


@dataclass(frozen=True)
class NormalizedRequest:
    """Vendor-ready inputs for the first call of the loop."""

    messages: list[Message]
    tools: list[Any]
    system_prompt: str


def normalize(
    request: Request,
    provider: Provider,
    *,
    tools: list[ToolDefinition] | None = None,
) -> NormalizedRequest:
    """Translate *request* for *provider*.

    ``tools`` overrides the declared tools, typically with the set the usage
    policy left enabled.
    """
    system_prompt = request.system_prompt or ""
    schema = request.response_schema()
    if schema is not None:
        system_prompt = f"{system_prompt}{build_schema_instructions(schema)}"

    messages: list[Message] = []
    if request.context:
        messages.append(Message(role="user", content=request.context))
    messages.extend(_convert_turn(turn) for turn in request.messages)

    if not provider.capabilities.system_message and not messages:
        # No system role in the message array and nothing to send: the system
        # prompt becomes the only user turn.
        messages.append(
            Message(role="user", content=system_prompt or EMPTY_CONVERSATION_SENTINEL)
        )
        system_prompt = ""

    declared = list(request.tools) if tools is None else tools
    vendor_tools = provider.format_tools(declared) if declared else []
    return NormalizedRequest(
        messages=messages, tools=vendor_tools, system_prompt=system_prompt
    )


def _convert_turn(turn: Turn) -> Message:
    if turn.role == "function":
        return Message(
            role="tool",
            content=turn.content or "",
            tool_call_id=turn.name,
            name=turn.name,
        )
    if turn.function_call is not None:
        call = turn.function_call
        return Message(
            role="assistant",
            tool_calls=(
                ToolCall(
                    id=f"{call.name}-{uuid.uuid4().hex[:8]}",
                    name=call.name,
                    arguments=call.arguments or "{}",
                ),
            ),
        )
    role = "assistant" if turn.role == "assistant" else "user"
    return Message(role=role, content=turn.content or "")


def build_schema_instructions(schema: dict[str, Any]) -> str:
    """Return the response-format instruction block for *schema*.

    Empty when the schema declares no properties.
    """
    properties = schema.get("properties")
    if not isinstance(properties, dict) or not properties:
        return ""

    template = ", ".join(
        f"{json.dumps(key)}: {_placeholder(prop)}" for key, prop in properties.items()
    )
    fields = "\n".join(
        _describe_field(key, prop) for key, prop in properties.items()
    )
    return (
        "\nIMPORTANT RESPONSE FORMAT INSTRUCTIONS:\n"
        "1. Your response must be EXACTLY in this format, with no additional fields:\n"
        f"{{{template}}}\n"
        "\n"
        "Field descriptions:\n"
        f"{fields}\n"
        "\n"
        "2. DO NOT include any explanatory text before or after the JSON\n"
        "3. DO NOT wrap the response in an array\n"
        "4. DO NOT add any fields not specified in the schema\n"
        "5. Your response MUST be valid JSON and include all the specified "
        "fields with their correct types"
    )


def _prop_type(prop: Any) -> str:
    if isinstance(prop, dict) and isinstance(prop.get("type"), str):
        return prop["type"]
    return "string"


def _placeholder(prop: Any) -> str:
    return SCHEMA_PLACEHOLDERS.get(_prop_type(prop), SCHEMA_PLACEHOLDERS["string"])


def _describe_field(key: str, prop: Any) -> str:
    description = prop.get("description") if isinstance(prop, dict) else None
    suffix = f": {description}" if description else ""
    return f"{key} ({_prop_type(prop)}){suffix}"
