"""Event and outcome types yielded by the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from docloom.types.documents import GenerationAttempt, Violation


@dataclass(frozen=True, slots=True)
class TextMessage:
    """Text produced by the model during analysis."""

    text: str
    is_partial: bool = True


@dataclass(frozen=True, slots=True)
class ToolUse:
    """Model requests a tool call."""

    id: str
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Result of executing a tool."""

    tool_use_id: str
    content: str
    is_error: bool = False
    display: str | None = None


@dataclass(frozen=True, slots=True)
class SystemEvent:
    """Lifecycle event (ingestion done, attempt started, document written...)."""

    type: str
    data: dict[str, Any] = field(default_factory=dict)


class AnalysisStatus(Enum):
    """How an analysis loop terminated."""

    SUCCESS = "success"
    TURN_EXHAUSTED = "turn_exhausted"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class AnalysisOutcome:
    """Terminal state of the analysis loop.

    Only ``SUCCESS`` carries usable ``fields``.  The other outcomes keep the
    last draft and its violations (or the transport error) for diagnosis.
    """

    status: AnalysisStatus
    fields: dict[str, Any] | None = None
    error: str | None = None
    turns: int = 0
    model_calls: int = 0
    tool_calls: int = 0
    draft: str | None = None
    violations: tuple[Violation, ...] = ()
    cause: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status is AnalysisStatus.SUCCESS


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Final result of a generation request."""

    template: str
    fields: dict[str, Any]
    html: str
    output_path: Path
    sidecar_path: Path
    dry_run: bool = False
    written: bool = False
    agent: str | None = None
    attempts: tuple[GenerationAttempt, ...] = ()
    turns: int = 0
    tool_calls: int = 0
    prompt_tokens: int = 0


Message = TextMessage | ToolUse | ToolResult | SystemEvent | AnalysisOutcome | GenerationResult
