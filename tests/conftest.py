"""Test fixtures including MockProvider for deterministic testing."""

from __future__ import annotations

import json
import sys
import textwrap
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from docloom.agents.cache import ArtifactCache
from docloom.types.agents import AgentDef, AgentRunResult, AgentTool
from docloom.types.documents import Template
from docloom.types.providers import ChatMessage, StreamEvent
from docloom.types.tools import ToolDef, ToolParam, ToolResultData

VALID_VISION = {"document": {"title": "Vision", "content": "A modular monolith."}}


@dataclass
class MockTurn:
    """A scripted turn for MockProvider.

    Specify either text or tool_uses (or both) for what the model should "respond" with.
    """

    text: str = ""
    tool_uses: list[dict[str, Any]] = field(default_factory=list)
    # Each tool_use: {"id": "tu1", "name": "list_files", "args": {"path": "."}}
    # Use "raw_args" instead of "args" to send an unparsed argument string.


class MockProvider:
    """A deterministic mock provider for testing.

    Usage:
        provider = MockProvider(turns=[
            MockTurn(tool_uses=[{"id": "tu1", "name": "list_files", "args": {}}]),
            MockTurn(text='{"document": {"title": "T", "content": "C"}}'),
        ])

    Every call is recorded in ``calls`` with the exact messages it was given.
    """

    def __init__(self, turns: list[MockTurn], model: str = "mock-model"):
        self._turns = list(turns)
        self._turn_index = 0
        self._model = model
        self.calls: list[dict[str, Any]] = []

    @property
    def model_id(self) -> str:
        return self._model

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def estimate_tokens(self, text: str) -> int:
        return max(1, len(text) // 4)

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        *,
        json_mode: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        """Yield scripted StreamEvents for the current turn."""
        self.calls.append({
            "messages": list(messages),
            "tools": list(tools),
            "system": system,
            "json_mode": json_mode,
        })
        if self._turn_index >= len(self._turns):
            yield StreamEvent(
                type="message_end", stop_reason="end_turn",
                usage={"input_tokens": 10, "output_tokens": 5},
            )
            return

        turn = self._turns[self._turn_index]
        self._turn_index += 1

        if turn.text:
            yield StreamEvent(type="text_delta", text=turn.text)

        for tu in turn.tool_uses:
            yield StreamEvent(
                type="tool_use_start",
                tool_use_id=tu["id"],
                tool_name=tu["name"],
            )
            args_json = tu["raw_args"] if "raw_args" in tu else json.dumps(tu.get("args", {}))
            yield StreamEvent(type="tool_use_delta", tool_args_json=args_json)
            yield StreamEvent(type="tool_use_end")

        stop_reason = "tool_use" if turn.tool_uses else "end_turn"
        yield StreamEvent(
            type="message_end",
            stop_reason=stop_reason,
            usage={"input_tokens": 100, "output_tokens": 50},
        )


class FailingMockProvider(MockProvider):
    """A mock provider that raises ConnectionError on the first N calls."""

    def __init__(
        self,
        turns: list[MockTurn],
        fail_count: int = 1,
        model: str = "mock-model",
    ):
        super().__init__(turns, model=model)
        self._fail_count = fail_count
        self._call_count = 0

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        *,
        json_mode: bool = False,
    ) -> Any:
        self._call_count += 1
        if self._call_count <= self._fail_count:
            raise ConnectionError(f"Simulated failure #{self._call_count}")
        async for event in super().chat_completion_stream(
            messages, tools, system, max_tokens, json_mode=json_mode,
        ):
            yield event


class MockAgentExecutor:
    """A mock agent executor that returns scripted tool results.

    ``results`` maps tool name to a :class:`ToolResultData` or an exception
    to raise.  Unscripted tools answer ``{}``.
    """

    def __init__(
        self,
        results: dict[str, ToolResultData | Exception] | None = None,
        run_result: AgentRunResult | None = None,
    ) -> None:
        self._results = dict(results or {})
        self._run_result = run_result
        self.calls: list[dict[str, Any]] = []

    async def run_tool(
        self,
        agent: AgentDef | str,
        tool_name: str,
        source_path: str,
        params: dict[str, Any] | None = None,
    ) -> ToolResultData:
        self.calls.append({"tool": tool_name, "source_path": source_path, "params": dict(params or {})})
        result = self._results.get(tool_name, ToolResultData(content="{}"))
        if isinstance(result, Exception):
            raise result
        return result

    async def run(
        self,
        agent: AgentDef | str,
        source_path: str,
        params: dict[str, Any] | None = None,
    ) -> AgentRunResult:
        self.calls.append({"run": True, "source_path": source_path, "params": dict(params or {})})
        assert self._run_result is not None, "no scripted run result"
        return self._run_result


def tool_agent(*tool_names: str, name: str = "scout") -> AgentDef:
    """An agent declaring *tool_names*, each taking an optional ``path`` argument."""
    return AgentDef(
        name=name,
        description="Test agent",
        command="scout-agent",
        tools=tuple(
            AgentTool(
                name=t,
                description=f"Run {t}",
                parameters=(ToolParam(name="path", type="string"),),
            )
            for t in tool_names
        ),
    )


def write_agent_script(directory: Path, name: str, body: str) -> str:
    """Write a Python agent script and return a command line that runs it.

    The script sees ``source = sys.argv[-2]`` and ``out = Path(sys.argv[-1])``.
    """
    script = directory / f"{name}.py"
    script.write_text(
        "import json, os, sys\n"
        "from pathlib import Path\n"
        "source = sys.argv[-2]\n"
        "out = Path(sys.argv[-1])\n"
        "out.mkdir(parents=True, exist_ok=True)\n"
        + textwrap.dedent(body)
    )
    return f'"{sys.executable}" "{script}"'


@pytest.fixture
def tmp_sources(tmp_path: Path) -> Path:
    """Create a small documentation tree to ingest."""
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "overview.md").write_text("# Overview\n\nThe billing service owns invoices.\n")
    (docs / "notes.txt").write_text("Payments are processed nightly.\n")
    (docs / "diagram.png").write_bytes(b"\x89PNG")
    return docs


@pytest.fixture
def cache(tmp_path: Path) -> ArtifactCache:
    return ArtifactCache(tmp_path / "cache")


@pytest.fixture
def simple_template() -> Template:
    return Template(
        name="simple",
        description="A single-section document",
        html="<h1><!-- data-field=\"doc.title\" --></h1><p><!-- data-field=\"doc.body\" --></p>",
        schema={
            "type": "object",
            "required": ["doc"],
            "properties": {
                "doc": {
                    "type": "object",
                    "required": ["title", "body"],
                    "properties": {
                        "title": {"type": "string"},
                        "body": {"type": "string"},
                    },
                },
            },
        },
        prompt="Summarize the sources.",
        analysis_system_prompt="You analyze repositories.",
        analysis_user_prompt="Analyze the repository.",
    )


@pytest.fixture
def mock_provider() -> MockProvider:
    """A provider that answers with a valid architecture vision document."""
    return MockProvider(turns=[MockTurn(text=json.dumps(VALID_VISION))])
