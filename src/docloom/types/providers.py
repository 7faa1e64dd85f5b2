"""Provider adapter protocol, conversation messages and stream event types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from docloom.types.tools import ToolDef


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """A single event from a streaming provider response."""

    type: str  # "text_delta", "tool_use_start", "tool_use_delta", "tool_use_end", "message_end"
    text: str | None = None
    tool_use_id: str | None = None
    tool_name: str | None = None
    tool_args_json: str | None = None
    stop_reason: str | None = None
    usage: dict[str, int] | None = None


@dataclass(frozen=True, slots=True)
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    args_error: str | None = None  # Set when the model sent unparseable arguments


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """A message in the conversation (provider-agnostic format).

    ``tool_calls`` is only populated on assistant messages that propose calls;
    ``tool_call_id`` only on ``role="tool"`` result messages.
    """

    role: str  # "system", "user", "assistant", "tool"
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_call_id: str | None = None
    is_error: bool = False


@dataclass(frozen=True, slots=True)
class ModelReply:
    """A fully collected model response."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    stop_reason: str = "end_turn"
    usage: dict[str, int] = field(default_factory=dict)

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)


@runtime_checkable
class ProviderAdapter(Protocol):
    """Protocol that all provider adapters must implement."""

    def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        *,
        json_mode: bool = False,
    ) -> Any:
        """Stream a chat completion. Returns an async iterator of StreamEvent."""
        ...

    @property
    def model_id(self) -> str:
        """The model identifier being used."""
        ...

    def estimate_tokens(self, text: str) -> int:
        """Rough token count estimate for a text string."""
        ...


@dataclass(frozen=True, slots=True)
class ModelInfo:
    """Information about a supported model."""

    id: str
    provider: str
    display_name: str
    context_window: int
    max_output_tokens: int
    supports_tools: bool = True
    supports_json_mode: bool = True
    aliases: tuple[str, ...] = ()
