"""CLI entry point for docloom."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from docloom.cli.output import print_message
from docloom.errors import AnalysisError, DocloomError, RepairExhaustedError
from docloom.types.config import GenerateRequest, Settings
from docloom.types.messages import Message


@click.group()
@click.version_option(package_name="docloom")
def cli() -> None:
    """docloom -- schema-validated technical documents from LLMs and research agents.

    \b
    Usage:
      docloom generate -t architecture-vision -s docs/ -o vision.html
      docloom generate -t technical-debt-summary -s ./repo --agent repo-scout -o debt.html
      docloom agents list
      docloom templates list
      docloom cache clean
    """


@cli.command("generate")
@click.option("--type", "-t", "template", required=True, help="Template name")
@click.option(
    "--source", "-s", "sources", multiple=True, required=True,
    help="Source file or directory (repeatable); the repository path when using an agent",
)
@click.option(
    "--out", "-o", "output", required=True, type=click.Path(path_type=Path),
    help="Output HTML path; fields are written beside it as <stem>.json",
)
@click.option("--agent", default=None, help="Research agent to run against the source")
@click.option(
    "--agent-param", "agent_params", multiple=True, metavar="KEY=VALUE",
    help="Parameter passed to the agent as PARAM_<KEY> (repeatable)",
)
@click.option("--model", "-m", default=None, help="Model ID or alias")
@click.option("--provider", "-p", default=None, help="LLM provider (default: inferred from the model)")
@click.option("--base-url", default=None, help="Provider base URL")
@click.option("--api-key", default=None, help="Provider API key")
@click.option("--max-turns", type=int, default=None, help="Maximum analysis turns")
@click.option("--max-repairs", type=int, default=None, help="Maximum repair attempts")
@click.option("--retries", type=int, default=None, help="Retries for transient model errors")
@click.option("--dry-run", is_flag=True, help="Compute everything but write nothing")
@click.option("--force", is_flag=True, help="Overwrite an existing output file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (includes agent logs)")
@click.option("--rich/--no-rich", default=None, help="Rich terminal output (default: auto)")
def generate_cmd(
    template: str,
    sources: tuple[str, ...],
    output: Path,
    agent: str | None,
    agent_params: tuple[str, ...],
    model: str | None,
    provider: str | None,
    base_url: str | None,
    api_key: str | None,
    max_turns: int | None,
    max_repairs: int | None,
    retries: int | None,
    dry_run: bool,
    force: bool,
    verbose: bool,
    rich: bool | None,
) -> None:
    """Generate a document from sources, optionally driven by a research agent."""
    use_rich = rich if rich is not None else sys.stderr.isatty()
    _configure_logging(verbose, use_rich)

    try:
        params = parse_agent_params(agent_params)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--agent-param") from e

    from docloom.core.config import load_settings

    settings = load_settings(
        model=model,
        provider=provider,
        base_url=base_url,
        api_key=api_key,
        max_turns=max_turns,
        max_repairs=max_repairs,
        max_retries=retries,
    )
    request = GenerateRequest(
        template=template,
        sources=sources,
        output=output,
        agent=agent,
        params=params,
        force=force,
        dry_run=dry_run,
        max_repairs=settings.max_repairs,
        max_turns=settings.max_turns,
    )

    # Choose output printer
    if use_rich:
        from docloom.ui.terminal import RichPrinter

        printer = RichPrinter()
        output_fn = printer.print_message
    else:
        output_fn = print_message

    try:
        asyncio.run(_run_generate(request, settings, output_fn))
    except DocloomError as e:
        _report_error(e)
        sys.exit(1)


def parse_agent_params(pairs: tuple[str, ...] | list[str]) -> dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; later pairs win."""
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        params[key.strip()] = value
    return params


async def _run_generate(
    request: GenerateRequest, settings: Settings, output_fn: Callable[[Message], None],
) -> None:
    """Run the generation and print output."""
    from docloom.core.engine import generate

    async for msg in generate(request, settings=settings):
        output_fn(msg)


def _report_error(error: DocloomError) -> None:
    click.secho(f"Error: {error}", fg="red", err=True)
    draft: str | None = None
    violations: tuple[Any, ...] = ()
    if isinstance(error, RepairExhaustedError):
        draft, violations = error.draft, error.violations
    elif isinstance(error, AnalysisError):
        draft, violations = error.outcome.draft, error.outcome.violations
    if violations:
        click.echo("Violations:", err=True)
        for v in violations:
            click.echo(f"  - {v.describe()}", err=True)
    if draft:
        click.echo("Last draft:", err=True)
        click.echo(draft, err=True)


def _configure_logging(verbose: bool, use_rich: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    if use_rich:
        from rich.console import Console
        from rich.logging import RichHandler

        handler: logging.Handler = RichHandler(console=Console(stderr=True), show_path=False)
        fmt = "%(message)s"
    else:
        handler = logging.StreamHandler(sys.stderr)
        fmt = "%(levelname)s %(name)s: %(message)s"
    logging.basicConfig(level=level, format=fmt, handlers=[handler], force=True)


def _register_subcommands() -> None:
    """Register CLI subcommands."""
    from docloom.cli.commands import agents_cmd, cache_cmd, templates_cmd

    cli.add_command(agents_cmd, "agents")
    cli.add_command(templates_cmd, "templates")
    cli.add_command(cache_cmd, "cache")


_register_subcommands()


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
