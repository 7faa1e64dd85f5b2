"""Basic text output for non-rich mode."""

from __future__ import annotations

import sys

from docloom.types.messages import (
    AnalysisOutcome,
    GenerationResult,
    Message,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)


def print_message(msg: Message) -> None:
    """Print a pipeline message; progress goes to stderr, nothing to stdout."""
    match msg:
        case TextMessage(text=t):
            if t.strip():
                print(f"[Model] {t[:200]}", file=sys.stderr)
        case ToolUse(name=name, args=args):
            detail = " ".join(f"{k}={v}" for k, v in args.items())
            print(f"[Tool: {name}] {detail}".rstrip(), file=sys.stderr)
        case ToolResult(content=content, is_error=is_error, display=display):
            if is_error:
                print(f"[Error] {content[:200]}", file=sys.stderr)
            elif display:
                print(f"[Result] {display}", file=sys.stderr)
        case SystemEvent(type="prompt_built", data=data):
            print(f"Prompt: ~{data['tokens']:,} tokens", file=sys.stderr)
            if data.get("preview"):
                print(data["preview"], file=sys.stderr)
        case SystemEvent(type="attempt", data=data) if not data["valid"]:
            print(f"Attempt {data['index']} failed validation:", file=sys.stderr)
            for line in data["violations"]:
                print(f"  - {line}", file=sys.stderr)
        case SystemEvent(type="answer_rejected", data=data):
            print(f"Answer rejected on turn {data['turn']}", file=sys.stderr)
        case SystemEvent():
            pass
        case AnalysisOutcome(status=status, turns=turns, tool_calls=tc):
            print(f"Analysis: {status.value} | Turns: {turns} | Tools: {tc}", file=sys.stderr)
        case GenerationResult() as r:
            print(file=sys.stderr)
            if r.dry_run:
                print(f"Dry run: would write {r.output_path} and {r.sidecar_path}", file=sys.stderr)
            else:
                print(f"Wrote {r.output_path} and {r.sidecar_path}", file=sys.stderr)
            parts = [f"Template: {r.template}", f"Attempts: {len(r.attempts)}"]
            if r.agent:
                parts.append(f"Agent: {r.agent}")
                parts.append(f"Turns: {r.turns}")
            if r.prompt_tokens:
                parts.append(f"Tokens: ~{r.prompt_tokens:,}")
            print(" | ".join(parts), file=sys.stderr)
