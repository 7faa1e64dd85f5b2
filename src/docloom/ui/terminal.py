"""Rich-powered terminal output."""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from docloom.types.documents import Violation
from docloom.types.messages import (
    AnalysisOutcome,
    GenerationResult,
    Message,
    SystemEvent,
    TextMessage,
    ToolResult,
    ToolUse,
)

ICON_TOOL = "▸"
ICON_FAIL = "✗"
ICON_OK = "✓"

STYLE_TOOL_NAME = "bold #a78bfa"
STYLE_TOOL_DETAIL = "#7c7c8a"
STYLE_ERROR_LABEL = "bold #f87171"
STYLE_ERROR_BODY = "#f87171"
STYLE_OK = "bold #34d399"
STYLE_MODEL_TEXT = "italic #94a3b8"
STYLE_RESULT_DIM = "dim #7c7c8a"
STYLE_RESULT_LABEL = "bold #94a3b8"
STYLE_RESULT_VALUE = "#e2e8f0"


class RichPrinter:
    """Rich-based message printer for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(stderr=True)

    def print_message(self, msg: Message) -> None:
        """Print a message with Rich formatting."""
        match msg:
            case TextMessage(text=t):
                if t.strip():
                    self._console.print(Text(f"  {t[:300]}", style=STYLE_MODEL_TEXT))

            case ToolUse(name=name, args=args):
                self._print_tool_use(name, args)

            case ToolResult(content=content, is_error=is_error, display=display):
                self._print_tool_result(content, is_error, display)

            case SystemEvent(type="generation_start", data=data):
                self._console.print(
                    f"[bold]{data['template']}[/bold] [dim]via {data['model']}[/dim]"
                    + (f" [dim]with agent {data['agent']}[/dim]" if data.get("agent") else ""),
                )

            case SystemEvent(type="prompt_built", data=data):
                self._console.print(f"  [dim]prompt ~{data['tokens']:,} tokens[/dim]")
                if data.get("preview"):
                    self._console.print(Panel(
                        Text(data["preview"], style=STYLE_RESULT_DIM),
                        title="Prompt preview",
                        border_style="#3f3f50",
                    ))

            case SystemEvent(type="attempt", data=data):
                self._print_attempt(data)

            case SystemEvent(type="answer_rejected", data=data):
                line = Text(f"  {ICON_FAIL} ", style=STYLE_ERROR_LABEL)
                line.append(f"answer rejected on turn {data['turn']}", style=STYLE_ERROR_BODY)
                self._console.print(line)

            case SystemEvent():
                pass

            case AnalysisOutcome() as outcome:
                style = STYLE_OK if outcome.ok else STYLE_ERROR_LABEL
                self._console.print(
                    Text(f"  analysis {outcome.status.value} after {outcome.turns} turn(s)", style=style),
                )

            case GenerationResult() as r:
                self._print_result(r)

    def print_violations(self, violations: tuple[Violation, ...] | list[Violation]) -> None:
        for v in violations:
            line = Text(f"    {ICON_FAIL} ", style=STYLE_ERROR_LABEL)
            line.append(v.describe(), style=STYLE_ERROR_BODY)
            self._console.print(line)

    def _print_tool_use(self, name: str, args: dict[str, Any]) -> None:
        line = Text()
        line.append(f"  {ICON_TOOL} ", style=STYLE_TOOL_NAME)
        line.append(name, style=STYLE_TOOL_NAME)
        detail = " ".join(f"{k}={v}" for k, v in args.items())
        if detail:
            line.append("  ")
            line.append(detail if len(detail) <= 120 else detail[:117] + "...", style=STYLE_TOOL_DETAIL)
        self._console.print(line)

    def _print_tool_result(self, content: str, is_error: bool, display: str | None) -> None:
        """Errors are prominent, success is quiet."""
        show = display or content
        if is_error:
            label = Text(f"    {ICON_FAIL} ", style=STYLE_ERROR_LABEL)
            label.append(show[:300], style=STYLE_ERROR_BODY)
            self._console.print(label)
        elif display:
            self._console.print(Text(f"    {display}", style=STYLE_RESULT_DIM))

    def _print_attempt(self, data: dict[str, Any]) -> None:
        if data["valid"]:
            self._console.print(Text(f"  {ICON_OK} attempt {data['index']} valid", style=STYLE_OK))
            return
        self._console.print(Text(
            f"  {ICON_FAIL} attempt {data['index']}: {len(data['violations'])} violation(s)",
            style=STYLE_ERROR_LABEL,
        ))
        for line in data["violations"]:
            self._console.print(Text(f"      {line}", style=STYLE_ERROR_BODY))

    def _print_result(self, result: GenerationResult) -> None:
        """Print the generation summary as a compact, styled table."""
        self._console.print()

        tbl = Table(
            show_header=False,
            show_edge=False,
            show_lines=False,
            padding=(0, 1),
            expand=False,
        )
        tbl.add_column(style=STYLE_RESULT_LABEL, justify="right", no_wrap=True)
        tbl.add_column(style=STYLE_RESULT_VALUE, no_wrap=True)

        tbl.add_row("Template", result.template)
        if result.agent:
            tbl.add_row("Agent", result.agent)
            tbl.add_row("Turns", str(result.turns))
            tbl.add_row("Tool calls", str(result.tool_calls))
        tbl.add_row("Attempts", str(len(result.attempts)))
        if result.prompt_tokens:
            tbl.add_row("Prompt", f"~{result.prompt_tokens:,} tokens")
        tbl.add_row("Document", str(result.output_path))
        tbl.add_row("Fields", str(result.sidecar_path))

        title = "Dry run (nothing written)" if result.dry_run else "Written"
        self._console.print(Panel(
            tbl,
            title=title,
            border_style="#3f3f50",
            expand=False,
            padding=(0, 1),
        ))
