"""Provider-agnostic request, telemetry, and envelope types.

These primitives are shared by the normalizer, the execution loop, every
vendor adapter, and the tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

from pydantic import BaseModel

from conduit.errors import ConfigurationError

Role = Literal["user", "assistant", "system", "function", "tool"]
UsageControl = Literal["auto", "force", "none"]
SegmentType = Literal["model", "tool"]


@dataclass(frozen=True)
class FunctionCall:
    """A function invocation carried by a prior assistant turn."""

    name: str
    #: JSON-encoded argument object.
    arguments: str = "{}"


@dataclass(frozen=True)
class Turn:
    """One prior conversational turn, before vendor translation."""

    role: Role
    content: str | None = None
    #: For ``function`` turns: the tool-use identifier the result answers.
    name: str | None = None
    function_call: FunctionCall | None = None


@dataclass(frozen=True)
class ToolDefinition:
    """A tool the model may call.

    ``params`` are preset arguments configured in the workflow; the model's
    own arguments override them key by key.
    """

    id: str
    description: str = ""
    parameters: dict[str, Any] = field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    params: dict[str, Any] = field(default_factory=dict)
    usage_control: UsageControl = "auto"


@dataclass(frozen=True)
class Request:
    """Immutable input for one provider execution."""

    model: str | None = None
    system_prompt: str | None = None
    context: str | None = None
    messages: tuple[Turn, ...] = ()
    tools: tuple[ToolDefinition, ...] = ()
    temperature: float | None = None
    max_tokens: int | None = None
    #: JSON schema dict, ``{"schema": {...}}`` wrapper, or pydantic model class.
    response_format: Any = None
    api_key: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        """Validate request shapes early for clear errors."""
        fmt = self.response_format
        if fmt is not None and not (
            isinstance(fmt, dict)
            or (isinstance(fmt, type) and issubclass(fmt, BaseModel))
        ):
            raise ConfigurationError(
                "response_format must be a Pydantic model class or JSON schema dict",
                hint="Pass a BaseModel subclass or a dict following JSON Schema.",
            )
        if self.max_tokens is not None and (
            not isinstance(self.max_tokens, int) or self.max_tokens <= 0
        ):
            raise ConfigurationError(
                "max_tokens must be a positive integer",
                hint="Pass max_tokens=1024 or omit it to use the provider default.",
            )
        # Accept lists from callers while keeping the dataclass hashable.
        if not isinstance(self.messages, tuple):
            object.__setattr__(self, "messages", tuple(self.messages))
        if not isinstance(self.tools, tuple):
            object.__setattr__(self, "tools", tuple(self.tools))

    def response_schema(self) -> dict[str, Any] | None:
        """Return the structured-output JSON schema, unwrapping ``{"schema": ...}``."""
        fmt = self.response_format
        if fmt is None:
            return None
        if isinstance(fmt, dict):
            inner = fmt.get("schema")
            return inner if isinstance(inner, dict) else fmt
        return fmt.model_json_schema()

    def find_tool(self, tool_id: str) -> ToolDefinition | None:
        """Return the declared tool named *tool_id*, if any."""
        for tool in self.tools:
            if tool.id == tool_id:
                return tool
        return None


@dataclass(frozen=True)
class ToolChoice:
    """Which tools the vendor may or must call on the *next* request.

    ``mode`` is one of ``auto``, ``none``, ``force`` (single tool) or
    ``sequence`` (ordered forced tools).
    """

    mode: Literal["auto", "none", "force", "sequence"]
    tools: tuple[str, ...] = ()

    @classmethod
    def auto(cls) -> ToolChoice:
        return cls("auto")

    @classmethod
    def none(cls) -> ToolChoice:
        return cls("none")

    @classmethod
    def force(cls, tool_id: str) -> ToolChoice:
        return cls("force", (tool_id,))

    @classmethod
    def sequence(cls, tool_ids: list[str] | tuple[str, ...]) -> ToolChoice:
        return cls("sequence", tuple(tool_ids))

    @property
    def is_forced(self) -> bool:
        return self.mode in ("force", "sequence")

    @property
    def forced_tool(self) -> str | None:
        """The tool the vendor must call next, if any."""
        if self.is_forced and self.tools:
            return self.tools[0]
        return None


@dataclass(frozen=True)
class TokenUsage:
    """Prompt/completion/total token counts. Addition is field-wise."""

    prompt: int = 0
    completion: int = 0
    total: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt=self.prompt + other.prompt,
            completion=self.completion + other.completion,
            total=self.total + other.total,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt": self.prompt,
            "completion": self.completion,
            "total": self.total,
        }


@dataclass(frozen=True)
class TimeSegment:
    """One timed span of model inference or tool execution (epoch ms)."""

    type: SegmentType
    name: str
    start_time: int
    end_time: int
    duration: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
        }


@dataclass(frozen=True)
class ToolCallRecord:
    """A successfully executed tool call (ISO-8601 timestamps, ms duration)."""

    name: str
    arguments: dict[str, Any]
    start_time: str
    end_time: str
    duration: int
    result: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "arguments": self.arguments,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "result": self.result,
        }


class TimingSummary(TypedDict, total=False):
    """Timing block of a ResponseEnvelope (or of a failure)."""

    start_time: str
    end_time: str
    duration: int
    #: The keys below are absent on failures.
    model_time: int
    tools_time: int
    first_response_time: int
    iterations: int
    time_segments: list[dict[str, Any]]


class ResponseEnvelope(TypedDict, total=False):
    """Uniform response returned by every provider.

    ``tool_calls`` and ``tool_results`` are present only when at least one tool
    executed successfully.
    """

    content: str
    model: str
    #: Keys: ``prompt``, ``completion``, ``total``.
    tokens: dict[str, int]
    tool_calls: list[dict[str, Any]]
    tool_results: list[Any]
    timing: TimingSummary


__all__ = [
    "FunctionCall",
    "Request",
    "ResponseEnvelope",
    "Role",
    "TimeSegment",
    "TimingSummary",
    "TokenUsage",
    "ToolCallRecord",
    "ToolChoice",
    "ToolDefinition",
    "Turn",
    "UsageControl",
]
