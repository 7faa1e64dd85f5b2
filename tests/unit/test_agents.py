"""Tests for docloom.agents.registry: agent definition discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from docloom.agents.registry import AgentRegistry, load_agent_file, parse_agent
from docloom.errors import AgentDefinitionError, AgentNotFoundError
from docloom.types.agents import AgentDef

TOOL_AGENT = """\
apiVersion: docloom/v1
kind: ResearchAgent
metadata:
  name: csharp-analyzer
  description: Walks a .NET solution
spec:
  runner:
    command: docloom-agent-csharp
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

RUNNER_AGENT = """\
apiVersion: docloom/v1
kind: ResearchAgent
metadata:
  name: summarizer
spec:
  runner:
    command: python -m summarizer
    args: ["--fast"]
"""


def _write(directory: Path, name: str, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.agent.yaml"
    path.write_text(text)
    return path


class TestLoadAgentFile:
    def test_tool_agent(self, tmp_path: Path):
        agent = load_agent_file(_write(tmp_path, "cs", TOOL_AGENT))

        assert agent.name == "csharp-analyzer"
        assert agent.has_tools
        assert [t.name for t in agent.tools] == ["list_projects", "get_file_content"]
        assert agent.tool("list_projects").artifact == "projects.json"
        assert agent.tool("get_file_content").args == ("get_file_content", "${FILE_PATH}")
        assert agent.tool("missing") is None
        assert agent.default_params() == {"include_tests": False}

        defs = agent.tool_defs()
        assert defs[1].parameters[0].name == "file_path"
        assert defs[1].parameters[0].required

    def test_runner_agent(self, tmp_path: Path):
        agent = load_agent_file(_write(tmp_path, "sum", RUNNER_AGENT))

        assert not agent.has_tools
        assert agent.command == "python -m summarizer"
        assert agent.args == ("--fast",)

    def test_not_a_mapping(self, tmp_path: Path):
        with pytest.raises(AgentDefinitionError, match="mapping"):
            load_agent_file(_write(tmp_path, "bad", "- just\n- a list\n"))

    def test_invalid_yaml(self, tmp_path: Path):
        with pytest.raises(AgentDefinitionError):
            load_agent_file(_write(tmp_path, "bad", "metadata: [unclosed\n"))


class TestParseAgent:
    def _data(self, **spec) -> dict:
        return {
            "apiVersion": "docloom/v1",
            "kind": "ResearchAgent",
            "metadata": {"name": "a"},
            "spec": spec,
        }

    def test_wrong_kind(self):
        data = self._data(runner={"command": "x"})
        data["kind"] = "Pod"
        with pytest.raises(AgentDefinitionError, match="kind"):
            parse_agent(data)

    def test_missing_name(self):
        data = self._data(runner={"command": "x"})
        data["metadata"] = {}
        with pytest.raises(AgentDefinitionError, match="metadata.name"):
            parse_agent(data)

    def test_duplicate_tool_names_rejected(self):
        tools = [{"name": "scan"}, {"name": "scan"}]
        with pytest.raises(AgentDefinitionError, match="duplicate"):
            parse_agent(self._data(runner={"command": "x"}, tools=tools))

    def test_tool_needs_a_command(self):
        with pytest.raises(AgentDefinitionError, match="no command"):
            parse_agent(self._data(tools=[{"name": "scan"}]))

    def test_tool_with_own_command(self):
        agent = parse_agent(self._data(tools=[{"name": "scan", "command": "scanner"}]))
        assert agent.tool("scan").command == "scanner"

    def test_runner_needs_a_command(self):
        with pytest.raises(AgentDefinitionError, match="runner.command"):
            parse_agent(self._data())


class TestAgentRegistry:
    def test_discover_and_get(self, tmp_path: Path):
        _write(tmp_path, "cs", TOOL_AGENT)
        _write(tmp_path, "sum", RUNNER_AGENT)
        registry = AgentRegistry([tmp_path])

        assert [a.name for a in registry.list()] == ["csharp-analyzer", "summarizer"]
        assert registry.get("summarizer").command == "python -m summarizer"

    def test_unknown_agent_lists_available(self, tmp_path: Path):
        _write(tmp_path, "sum", RUNNER_AGENT)
        registry = AgentRegistry([tmp_path])

        with pytest.raises(AgentNotFoundError, match="summarizer"):
            registry.get("ghost")

    def test_earlier_search_path_wins(self, tmp_path: Path):
        project, user = tmp_path / "project", tmp_path / "user"
        _write(project, "sum", RUNNER_AGENT)
        _write(user, "sum", RUNNER_AGENT.replace("python -m summarizer", "other"))

        registry = AgentRegistry([project, user])

        assert registry.get("summarizer").command == "python -m summarizer"

    def test_registered_agents_survive_discovery(self, tmp_path: Path):
        registry = AgentRegistry([tmp_path / "missing"])
        registry.register(AgentDef(name="inline", command="x"))

        assert [a.name for a in registry.list()] == ["inline"]

    def test_invalid_file_fails_discovery(self, tmp_path: Path):
        _write(tmp_path, "broken", "apiVersion: v1\nkind: Nope\n")
        registry = AgentRegistry([tmp_path])

        with pytest.raises(AgentDefinitionError, match="broken.agent.yaml"):
            registry.list()
