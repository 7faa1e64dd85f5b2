"""Agent discovery from ``*.agent.yaml`` definition files.

An agent file looks like::

    apiVersion: docloom/v1
    kind: ResearchAgent
    metadata:
      name: csharp-analyzer
      description: Walks a .NET solution
    spec:
      runner:
        command: docloom-agent-csharp
        args: []
      parameters:
        - name: include_tests
          type: boolean
          default: false
      tools:
        - name: list_projects
          description: List the projects in the solution
          args: [list_projects]
          artifact: projects.json
        - name: get_file_content
          description: Return one file
          args: [get_file_content, "${FILE_PATH}"]
          parameters:
            - name: file_path
              type: string
              required: true
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from docloom.errors import AgentDefinitionError, AgentNotFoundError
from docloom.types.agents import AgentDef, AgentParam, AgentTool
from docloom.types.tools import ToolParam

logger = logging.getLogger(__name__)

AGENT_KIND = "ResearchAgent"
AGENT_PATTERNS = ("*.agent.yaml", "*.agent.yml")


def default_search_paths(cwd: str | None = None) -> list[Path]:
    """Project-local agents first, then the user's."""
    base = Path(cwd) if cwd else Path.cwd()
    return [base / ".docloom" / "agents", Path.home() / ".docloom" / "agents"]


class AgentRegistry:
    """Discovers and holds agent definitions by name.

    Earlier search paths win when two files declare the same agent name.
    """

    def __init__(self, search_paths: list[Path] | None = None) -> None:
        self._search_paths = list(search_paths) if search_paths is not None else default_search_paths()
        self._agents: dict[str, AgentDef] = {}
        self._loaded = False

    def add_search_path(self, path: Path) -> None:
        self._search_paths.append(Path(path))
        self._loaded = False

    def register(self, agent: AgentDef) -> None:
        self._agents[agent.name] = agent

    def discover(self) -> list[AgentDef]:
        """Scan the search paths and load every agent file found.

        Invalid files raise :class:`AgentDefinitionError`.
        """
        found: dict[str, AgentDef] = {}
        for directory in self._search_paths:
            if not directory.is_dir():
                continue
            files = sorted({p for pattern in AGENT_PATTERNS for p in directory.glob(pattern)})
            for path in files:
                agent = load_agent_file(path)
                if agent.name in found:
                    logger.debug("Agent %r in %s shadowed by %s", agent.name, path, found[agent.name].source)
                    continue
                found[agent.name] = agent
        # Explicitly registered agents take precedence over discovered ones.
        found.update(self._agents)
        self._agents = found
        self._loaded = True
        logger.debug("Discovered %d agent(s)", len(found))
        return list(found.values())

    def get(self, name: str) -> AgentDef:
        if not self._loaded:
            self.discover()
        if name not in self._agents:
            raise AgentNotFoundError(name, list(self._agents))
        return self._agents[name]

    def list(self) -> list[AgentDef]:
        if not self._loaded:
            self.discover()
        return sorted(self._agents.values(), key=lambda a: a.name)


def load_agent_file(path: Path) -> AgentDef:
    """Parse and validate a single agent definition file."""
    try:
        data = yaml.safe_load(path.read_text())
    except (OSError, yaml.YAMLError) as exc:
        raise AgentDefinitionError(f"{path}: cannot read agent definition: {exc}") from exc
    if not isinstance(data, dict):
        raise AgentDefinitionError(f"{path}: agent definition must be a mapping")
    try:
        return parse_agent(data, source=path)
    except AgentDefinitionError as exc:
        raise AgentDefinitionError(f"{path}: {exc}") from None


def parse_agent(data: dict[str, Any], *, source: Path | None = None) -> AgentDef:
    """Build an :class:`AgentDef` from raw YAML data."""
    if not data.get("apiVersion"):
        raise AgentDefinitionError("apiVersion is required")
    if data.get("kind") != AGENT_KIND:
        raise AgentDefinitionError(f"kind must be {AGENT_KIND!r}, got {data.get('kind')!r}")

    metadata = data.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise AgentDefinitionError("metadata.name is required")

    spec = data.get("spec") or {}
    runner = spec.get("runner") or {}
    command = runner.get("command") or None

    parameters = tuple(_parse_agent_param(p) for p in spec.get("parameters") or [])
    tools = tuple(_parse_tool(t) for t in spec.get("tools") or [])

    seen: set[str] = set()
    for tool in tools:
        if tool.name in seen:
            raise AgentDefinitionError(f"duplicate tool name {tool.name!r}")
        seen.add(tool.name)
        if tool.command is None and command is None:
            raise AgentDefinitionError(f"tool {tool.name!r} has no command and spec.runner.command is empty")
    if not tools and command is None:
        raise AgentDefinitionError("spec.runner.command is required")

    return AgentDef(
        name=str(name),
        description=str(metadata.get("description") or ""),
        api_version=str(data["apiVersion"]),
        command=command,
        args=tuple(str(a) for a in runner.get("args") or []),
        parameters=parameters,
        tools=tools,
        source=source,
    )


def _parse_agent_param(raw: Any) -> AgentParam:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise AgentDefinitionError(f"invalid parameter entry: {raw!r}")
    return AgentParam(
        name=str(raw["name"]),
        type=str(raw.get("type", "string")),
        required=bool(raw.get("required", False)),
        default=raw.get("default"),
        description=str(raw.get("description", "")),
    )


def _parse_tool(raw: Any) -> AgentTool:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise AgentDefinitionError(f"invalid tool entry: {raw!r}")
    params = []
    for p in raw.get("parameters") or []:
        if not isinstance(p, dict) or not p.get("name"):
            raise AgentDefinitionError(f"tool {raw['name']!r}: invalid parameter entry {p!r}")
        enum = p.get("enum")
        params.append(ToolParam(
            name=str(p["name"]),
            type=str(p.get("type", "string")),
            description=str(p.get("description", "")),
            required=bool(p.get("required", False)),
            enum=tuple(str(e) for e in enum) if enum else None,
            default=p.get("default"),
        ))
    return AgentTool(
        name=str(raw["name"]),
        description=str(raw.get("description", "")),
        parameters=tuple(params),
        command=raw.get("command") or None,
        args=tuple(str(a) for a in raw.get("args") or []),
        artifact=raw.get("artifact") or None,
    )
