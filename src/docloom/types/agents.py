"""Research agent definition types."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docloom.types.tools import ToolDef, ToolParam


@dataclass(frozen=True, slots=True)
class AgentParam:
    """A parameter an agent accepts, passed to it as ``PARAM_<NAME>``."""

    name: str
    type: str = "string"
    required: bool = False
    default: Any = None
    description: str = ""


@dataclass(frozen=True, slots=True)
class AgentTool:
    """A tool declared by an agent.

    ``command`` overrides the agent's runner command for this tool; ``args``
    are appended before the positional ``<source_path> <output_dir>`` pair.
    """

    name: str
    description: str
    parameters: tuple[ToolParam, ...] = ()
    command: str | None = None
    args: tuple[str, ...] = ()
    artifact: str | None = None  # File name expected in the output dir

    def to_tool_def(self) -> ToolDef:
        return ToolDef(name=self.name, description=self.description, parameters=self.parameters)


@dataclass(frozen=True, slots=True)
class AgentDef:
    """Definition of an external research agent (``*.agent.yaml``)."""

    name: str
    description: str = ""
    api_version: str = "docloom/v1"
    command: str | None = None
    args: tuple[str, ...] = ()
    parameters: tuple[AgentParam, ...] = ()
    tools: tuple[AgentTool, ...] = ()
    source: Path | None = None
    _tool_index: dict[str, AgentTool] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._tool_index.update({t.name: t for t in self.tools})

    @property
    def has_tools(self) -> bool:
        return bool(self.tools)

    def tool(self, name: str) -> AgentTool | None:
        """Look up a declared tool by name."""
        return self._tool_index.get(name)

    def tool_defs(self) -> list[ToolDef]:
        """Tool definitions in declaration order."""
        return [t.to_tool_def() for t in self.tools]

    def default_params(self) -> dict[str, Any]:
        return {p.name: p.default for p in self.parameters if p.default is not None}


@dataclass(frozen=True, slots=True)
class AgentRunResult:
    """Outcome of running an agent in runner mode."""

    agent: str
    output_path: Path
    exit_code: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and self.error is None
