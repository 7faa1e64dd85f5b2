"""The analysis loop: a bounded, tool-calling conversation with the model.

State machine::

    Init -> AwaitingModel <-> AwaitingTool -> Terminated

A turn is one non-terminal round-trip: either a round of tool executions or
a rejected final answer followed by a correction note.  With ``max_turns=N``
the loop executes at most N tool rounds and calls the model at most N+1
times.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

from docloom.core.session import AnalysisSession
from docloom.errors import TransportError
from docloom.prompts.builder import build_analysis_user_prompt, build_correction_note
from docloom.providers.base import collect_reply
from docloom.types.agents import AgentDef
from docloom.types.documents import Template
from docloom.types.messages import (
    AnalysisOutcome,
    AnalysisStatus,
    Message,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)
from docloom.types.providers import ChatMessage, ProviderAdapter, ToolCall
from docloom.types.tools import ToolResultData
from docloom.validate.validator import validate_text

logger = logging.getLogger(__name__)


class ToolRunner(Protocol):
    """What the loop needs from the agent execution engine."""

    async def run_tool(
        self, agent: AgentDef, tool_name: str, source_path: str, params: dict[str, Any] | None = None,
    ) -> ToolResultData:
        ...


class AnalysisLoop:
    """Drives one agent-backed analysis to a terminal :class:`AnalysisOutcome`.

    Tool calls are executed one at a time in the order the model emitted
    them, and every call gets exactly one result message before the model is
    invoked again.  Tool failures are fed back to the model; only a transport
    failure ends the loop early.
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        runner: ToolRunner,
        agent: AgentDef,
        template: Template,
        *,
        max_turns: int = 10,
        max_tokens: int = 4096,
        params: dict[str, Any] | None = None,
    ) -> None:
        if max_turns < 0:
            raise ValueError("max_turns must be >= 0")
        self._provider = provider
        self._runner = runner
        self._agent = agent
        self._template = template
        self._max_turns = max_turns
        self._max_tokens = max_tokens
        self._params = dict(params or {})
        self._tool_defs = agent.tool_defs()
        self.session: AnalysisSession | None = None

    async def run(self, source_path: str) -> AsyncIterator[Message]:
        """Run the loop, yielding progress events and finally the outcome."""
        session = AnalysisSession(
            agent=self._agent.name,
            template=self._template.name,
            source_path=source_path,
            max_turns=self._max_turns,
            params=self._params,
        )
        self.session = session
        session.add_message(ChatMessage(role="system", content=self._template.analysis_system_prompt))
        session.add_message(ChatMessage(
            role="user", content=build_analysis_user_prompt(self._template, source_path),
        ))

        yield SystemEvent(type="analysis_start", data={
            "session_id": session.session_id,
            "agent": self._agent.name,
            "tools": [t.name for t in self._tool_defs],
            "max_turns": self._max_turns,
        })

        model_calls = 0
        tool_calls = 0

        def outcome(status: AnalysisStatus, **kwargs: Any) -> AnalysisOutcome:
            return AnalysisOutcome(
                status=status,
                turns=session.turn,
                model_calls=model_calls,
                tool_calls=tool_calls,
                **kwargs,
            )

        while True:
            # AwaitingModel
            try:
                reply = await collect_reply(
                    self._provider,
                    list(session.messages),
                    self._tool_defs,
                    "",
                    self._max_tokens,
                )
            except TransportError as exc:
                logger.error("Model call failed during analysis: %s", exc)
                yield outcome(AnalysisStatus.FATAL, error=str(exc), cause=exc)
                return
            model_calls += 1

            if reply.text:
                yield TextMessage(text=reply.text, is_partial=False)

            if reply.tool_calls:
                if not session.budget_left:
                    logger.warning(
                        "Turn budget of %d spent with %d tool call(s) still requested",
                        self._max_turns, len(reply.tool_calls),
                    )
                    yield outcome(
                        AnalysisStatus.TURN_EXHAUSTED,
                        error=f"Turn budget of {self._max_turns} exhausted before a final answer",
                    )
                    return

                session.add_message(ChatMessage(
                    role="assistant", content=reply.text, tool_calls=reply.tool_calls,
                ))
                # AwaitingTool
                for call in reply.tool_calls:
                    yield ToolUse(id=call.id, name=call.name, args=call.args)
                    result = await self._execute_tool(call, source_path)
                    tool_calls += 1
                    session.add_message(ChatMessage(
                        role="tool",
                        content=result.content,
                        tool_call_id=call.id,
                        is_error=result.is_error,
                    ))
                    yield ToolResult(
                        tool_use_id=call.id,
                        content=result.content,
                        is_error=result.is_error,
                        display=result.display,
                    )
                session.advance_turn()
                continue

            # Final answer
            session.add_message(ChatMessage(role="assistant", content=reply.text))
            fields, violations = validate_text(reply.text, self._template.schema)
            if fields is not None:
                yield outcome(AnalysisStatus.SUCCESS, fields=fields, draft=reply.text)
                return

            yield SystemEvent(type="answer_rejected", data={
                "turn": session.turn,
                "violations": [v.describe() for v in violations],
            })
            if not session.budget_left:
                yield outcome(
                    AnalysisStatus.TURN_EXHAUSTED,
                    error=f"Turn budget of {self._max_turns} exhausted; last answer failed validation",
                    draft=reply.text,
                    violations=tuple(violations),
                )
                return
            session.add_message(ChatMessage(role="user", content=build_correction_note(violations)))
            session.advance_turn()

    async def _execute_tool(self, call: ToolCall, source_path: str) -> ToolResultData:
        """Run one tool call; every failure comes back as an error result."""
        if call.args_error is not None:
            return ToolResultData(content=f"Invalid arguments for {call.name}: {call.args_error}", is_error=True)
        if self._agent.tool(call.name) is None:
            return ToolResultData(content=f"Unknown tool: {call.name}", is_error=True)

        params = {**self._params, **call.args}
        try:
            return await self._runner.run_tool(self._agent, call.name, source_path, params)
        except Exception as e:
            logger.exception("Tool %s raised", call.name)
            return ToolResultData(content=f"Tool error: {type(e).__name__}: {e}", is_error=True)
