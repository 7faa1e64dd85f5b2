"""AnalysisSession: the append-only conversation owned by one analysis run."""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from docloom.types.providers import ChatMessage


def new_session_id() -> str:
    """Generate a new session ID."""
    return uuid.uuid4().hex[:12]


class AnalysisSession:
    """Conversation state for a single analysis loop.

    ``messages`` is an immutable tuple that is replaced on every append, so
    each model invocation replays an exact snapshot of the conversation.
    """

    def __init__(
        self,
        *,
        agent: str,
        template: str,
        source_path: str,
        max_turns: int,
        params: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or new_session_id()
        self.agent = agent
        self.template = template
        self.source_path = source_path
        self.max_turns = max_turns
        self.params: dict[str, Any] = dict(params or {})
        self.created_at = datetime.now(UTC)
        self._messages: tuple[ChatMessage, ...] = ()
        self._turn = 0

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self._messages

    @property
    def turn(self) -> int:
        return self._turn

    @property
    def budget_left(self) -> bool:
        return self._turn < self.max_turns

    def add_message(self, message: ChatMessage) -> None:
        self._messages = (*self._messages, message)

    def advance_turn(self) -> int:
        if self._turn >= self.max_turns:
            raise RuntimeError(f"Turn budget of {self.max_turns} already spent")
        self._turn += 1
        return self._turn

    def pending_tool_calls(self) -> list[str]:
        """Tool call ids proposed by the last assistant message that have no result yet."""
        for index in range(len(self._messages) - 1, -1, -1):
            msg = self._messages[index]
            if msg.role == "assistant":
                answered = {m.tool_call_id for m in self._messages[index + 1:] if m.role == "tool"}
                return [c.id for c in msg.tool_calls if c.id not in answered]
        return []

    def dump_jsonl(self, path: Path) -> Path:
        """Write the transcript as JSONL (metadata line, then one line per message)."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            f.write(json.dumps({
                "type": "metadata",
                "data": {
                    "session_id": self.session_id,
                    "agent": self.agent,
                    "template": self.template,
                    "source_path": self.source_path,
                    "max_turns": self.max_turns,
                    "turns": self._turn,
                    "created_at": self.created_at.isoformat(),
                },
            }) + "\n")
            for msg in self._messages:
                f.write(json.dumps({"type": "message", "data": asdict(msg)}, default=str) + "\n")
        return path
