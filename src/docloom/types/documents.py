"""Document-level types: schema violations, generation attempts, run directories."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class Violation:
    """A single schema violation at a dotted field path."""

    path: str
    message: str
    expected: str | None = None
    actual: str | None = None

    def describe(self) -> str:
        """Render as ``field: message`` with expected/actual when known."""
        text = f"{self.path}: {self.message}"
        if self.expected is not None and self.actual is not None:
            text += f" (expected {self.expected}, got {self.actual})"
        return text


@dataclass(frozen=True, slots=True)
class GenerationAttempt:
    """One iteration of the validation-repair loop."""

    index: int
    draft: str
    violations: tuple[Violation, ...] = ()
    fields: dict[str, Any] | None = None

    @property
    def valid(self) -> bool:
        return self.fields is not None and not self.violations


@dataclass(frozen=True, slots=True)
class RunArtifactDirectory:
    """A uniquely named working directory for one agent run."""

    path: Path
    created_at: datetime
    agent_name: str
    pid: int


@dataclass(frozen=True, slots=True)
class Template:
    """A document template: HTML with data-field markers plus a JSON schema."""

    name: str
    description: str
    html: str
    schema: dict[str, Any]
    prompt: str = ""
    analysis_system_prompt: str = ""
    analysis_user_prompt: str = ""

    @property
    def supports_analysis(self) -> bool:
        return bool(self.analysis_system_prompt and self.analysis_user_prompt)
