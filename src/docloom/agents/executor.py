"""AgentExecutor: runs research agents as external processes.

Every invocation gets its own run directory from the :class:`ArtifactCache`
and is launched as ``<command> [args...] <source_path> <output_dir>`` with
parameters exported as ``PARAM_*`` environment variables.  Tool failures are
returned as error :class:`ToolResultData`, never raised, so the model can see
them and adapt.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import shlex
from collections import deque
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from docloom.agents.cache import ArtifactCache
from docloom.agents.params import build_param_env, param_env_name
from docloom.agents.registry import AgentRegistry
from docloom.errors import AgentNotFoundError, PreconditionError
from docloom.types.agents import AgentDef, AgentRunResult, AgentTool
from docloom.types.tools import ToolResultData

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\}")
_STDERR_TAIL_LINES = 20
_READ_CHUNK = 64 * 1024
_MAX_LOGGED_CHARS = 2000


class AgentExecutor:
    """Executes agent tools and runners.

    Parameters
    ----------
    registry:
        Where agent definitions are resolved by name.
    cache:
        Supplies a fresh output directory for every process.
    """

    def __init__(self, registry: AgentRegistry, cache: ArtifactCache) -> None:
        self._registry = registry
        self._cache = cache

    @property
    def cache(self) -> ArtifactCache:
        return self._cache

    async def run_tool(
        self,
        agent: AgentDef | str,
        tool_name: str,
        source_path: str,
        params: Mapping[str, Any] | None = None,
    ) -> ToolResultData:
        """Run one named tool of *agent* and return its JSON artifact.

        Success requires exit code 0 and a parseable JSON artifact in the run
        directory; the result content is the re-encoded JSON.  Anything else
        comes back as ``is_error=True`` with a description of what went wrong.
        """
        if isinstance(agent, str):
            try:
                agent = self._registry.get(agent)
            except AgentNotFoundError as exc:
                return ToolResultData(content=str(exc), is_error=True)

        tool = agent.tool(tool_name)
        if tool is None:
            available = ", ".join(t.name for t in agent.tools) or "(none)"
            return ToolResultData(
                content=f"Unknown tool: {tool_name!r} for agent {agent.name!r}. Available: {available}",
                is_error=True,
            )

        merged: dict[str, Any] = {**agent.default_params(), "source_path": source_path, **(params or {})}
        command = tool.command or agent.command or ""
        run_dir = self._cache.create_run_directory(agent.name)
        argv = [
            *shlex.split(command),
            *(_substitute(a, merged) for a in tool.args),
            source_path,
            str(run_dir.path),
        ]
        label = f"{agent.name}/{tool.name}"

        try:
            exit_code, stderr_tail = await self._spawn(argv, build_param_env(merged), label)
        except OSError as exc:
            return ToolResultData(content=f"Agent {label} failed to start: {exc}", is_error=True)
        except Exception as exc:
            logger.exception("Agent %s failed while running", label)
            return ToolResultData(content=f"Agent {label} failed: {type(exc).__name__}: {exc}", is_error=True)

        if exit_code != 0:
            detail = f": {stderr_tail}" if stderr_tail else ""
            return ToolResultData(
                content=f"Agent {label} exited with code {exit_code}{detail}",
                is_error=True,
            )
        return _read_artifact(label, tool, run_dir.path)

    async def run(
        self,
        agent: AgentDef | str,
        source_path: str,
        params: Mapping[str, Any] | None = None,
    ) -> AgentRunResult:
        """Run the agent's runner once; its output directory becomes the result.

        Raises
        ------
        AgentNotFoundError
            When *agent* names an unknown agent.
        PreconditionError
            When the agent declares no runner command.
        """
        if isinstance(agent, str):
            agent = self._registry.get(agent)
        if not agent.command:
            raise PreconditionError(f"Agent {agent.name!r} has no runner command")

        merged: dict[str, Any] = {**agent.default_params(), "source_path": source_path, **(params or {})}
        run_dir = self._cache.create_run_directory(agent.name)
        argv = [
            *shlex.split(agent.command),
            *(_substitute(a, merged) for a in agent.args),
            source_path,
            str(run_dir.path),
        ]

        try:
            exit_code, stderr_tail = await self._spawn(argv, build_param_env(merged), agent.name)
        except OSError as exc:
            return AgentRunResult(agent.name, run_dir.path, -1, f"failed to start: {exc}")
        except Exception as exc:
            logger.exception("Agent %s failed while running", agent.name)
            return AgentRunResult(agent.name, run_dir.path, -1, f"failed: {type(exc).__name__}: {exc}")

        if exit_code != 0:
            return AgentRunResult(
                agent.name, run_dir.path, exit_code,
                f"exited with code {exit_code}" + (f": {stderr_tail}" if stderr_tail else ""),
            )
        if not any(run_dir.path.iterdir()):
            return AgentRunResult(agent.name, run_dir.path, exit_code, "produced no output")
        return AgentRunResult(agent.name, run_dir.path, exit_code)

    async def _spawn(self, argv: list[str], param_env: dict[str, str], label: str) -> tuple[int, str]:
        """Run *argv* to completion, streaming its output to the logger.

        If reading the output fails or the awaiting task is cancelled, the
        child is killed and reaped before the exception propagates.
        """
        env = {**os.environ, **param_env}
        logger.info("Running agent %s: %s", label, shlex.join(argv))
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        stderr_tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        pumps = [
            asyncio.ensure_future(_pump(proc.stdout, label, "stdout", None)),
            asyncio.ensure_future(_pump(proc.stderr, label, "stderr", stderr_tail)),
        ]
        try:
            await asyncio.gather(*pumps)
            exit_code = await proc.wait()
        except BaseException:
            for task in pumps:
                task.cancel()
            _kill(proc)
            await proc.wait()
            raise
        logger.debug("Agent %s exited with code %d", label, exit_code)
        return exit_code, "\n".join(stderr_tail)


async def _pump(
    stream: asyncio.StreamReader | None,
    label: str,
    name: str,
    tail: deque[str] | None,
) -> None:
    """Log *stream* line by line; lines longer than the chunk size are logged in pieces."""
    if stream is None:
        return
    pending = b""
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        *lines, pending = (pending + chunk).split(b"\n")
        if len(pending) >= _READ_CHUNK:
            lines.append(pending)
            pending = b""
        for raw in lines:
            _log_line(raw, label, name, tail)
    if pending:
        _log_line(pending, label, name, tail)


def _log_line(raw: bytes, label: str, name: str, tail: deque[str] | None) -> None:
    line = raw.decode("utf-8", errors="replace").rstrip()
    logger.debug("[%s %s] %s", label, name, line[:_MAX_LOGGED_CHARS])
    if tail is not None and line:
        tail.append(line[:_MAX_LOGGED_CHARS])


def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass


def _substitute(arg: str, params: Mapping[str, Any]) -> str:
    """Expand ``${NAME}`` placeholders from *params*; unknown names become empty."""
    by_env_name = {param_env_name(k): v for k, v in params.items()}

    def repl(match: re.Match[str]) -> str:
        value = by_env_name.get(param_env_name(match.group(1)))
        return "" if value is None else str(value)

    return _PLACEHOLDER.sub(repl, arg)


def _read_artifact(label: str, tool: AgentTool, output_dir: Path) -> ToolResultData:
    if tool.artifact:
        candidates = [output_dir / tool.artifact]
    else:
        candidates = sorted(output_dir.glob("*.json"))

    present = [p for p in candidates if p.is_file()]
    if not present:
        return ToolResultData(
            content=f"Agent {label} produced no JSON artifact in {output_dir}",
            is_error=True,
        )

    artifacts: dict[str, Any] = {}
    for path in present:
        try:
            artifacts[path.name] = json.loads(path.read_text())
        except (OSError, ValueError) as exc:
            return ToolResultData(
                content=f"Agent {label} wrote an invalid artifact {path.name}: {exc}",
                is_error=True,
            )

    data = next(iter(artifacts.values())) if len(artifacts) == 1 else artifacts
    return ToolResultData(
        content=json.dumps(data),
        display=f"{label}: {', '.join(artifacts)}",
    )
