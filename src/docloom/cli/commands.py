"""CLI subcommands for docloom (agents, templates, cache)."""

from __future__ import annotations

import time

import click

from docloom.errors import DocloomError


def _agent_registry(cwd: str | None = None):
    from docloom.agents.registry import AgentRegistry, default_search_paths
    from docloom.core.config import load_settings

    settings = load_settings(cwd)
    return AgentRegistry([*default_search_paths(cwd), *settings.agent_dirs])


@click.group()
def agents_cmd() -> None:
    """Inspect research agents."""


@agents_cmd.command("list")
@click.option("--cwd", default=None, help="Project directory to search for agents")
def agents_list(cwd: str | None) -> None:
    """List discovered agents."""
    try:
        agents = _agent_registry(cwd).list()
    except DocloomError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1)

    if not agents:
        click.echo("No agents found. Add *.agent.yaml files to .docloom/agents/")
        return

    click.echo(f"{'Name':<28} {'Mode':<8} {'Tools':<6} {'Description'}")
    click.echo("-" * 80)
    for agent in agents:
        mode = "tools" if agent.has_tools else "runner"
        click.echo(f"{agent.name:<28} {mode:<8} {len(agent.tools):<6} {agent.description}")


@agents_cmd.command("describe")
@click.argument("name")
@click.option("--cwd", default=None, help="Project directory to search for agents")
def agents_describe(name: str, cwd: str | None) -> None:
    """Show details for a specific agent."""
    try:
        agent = _agent_registry(cwd).get(name)
    except DocloomError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1)

    click.echo(f"Name:        {agent.name}")
    click.echo(f"Description: {agent.description or '(none)'}")
    click.echo(f"API version: {agent.api_version}")
    if agent.command:
        click.echo(f"Runner:      {' '.join([agent.command, *agent.args])}")
    if agent.source:
        click.echo(f"Defined in:  {agent.source}")

    if agent.parameters:
        click.echo("\nParameters:")
        for p in agent.parameters:
            flags = " (required)" if p.required else ""
            default = f" [default: {p.default}]" if p.default is not None else ""
            click.echo(f"  {p.name}: {p.type}{flags}{default}  {p.description}".rstrip())

    if agent.tools:
        click.echo("\nTools:")
        for tool in agent.tools:
            click.echo(f"  {tool.name}  {tool.description}".rstrip())
            for p in tool.parameters:
                flags = " (required)" if p.required else ""
                click.echo(f"      {p.name}: {p.type}{flags}")


@click.group()
def templates_cmd() -> None:
    """Inspect document templates."""


@templates_cmd.command("list")
def templates_list() -> None:
    """List available templates."""
    from docloom.core.config import load_settings
    from docloom.templates.registry import TemplateRegistry

    registry = TemplateRegistry()
    try:
        for directory in load_settings().template_dirs:
            registry.load_directory(directory)
    except DocloomError as e:
        click.secho(f"Error: {e}", fg="red", err=True)
        raise SystemExit(1)

    click.echo(f"{'Name':<28} {'Agent-ready':<12} {'Description'}")
    click.echo("-" * 80)
    for template in registry.list():
        ready = "yes" if template.supports_analysis else "no"
        click.echo(f"{template.name:<28} {ready:<12} {template.description}")


@click.group()
def cache_cmd() -> None:
    """Manage the agent artifact cache."""


def _cache():
    from docloom.agents.cache import ArtifactCache
    from docloom.core.config import load_settings

    return ArtifactCache(load_settings().cache_dir)


@cache_cmd.command("path")
def cache_path() -> None:
    """Print the cache directory."""
    click.echo(str(_cache().root))


@cache_cmd.command("clean")
@click.option("--all", "clean_all", is_flag=True, help="Remove every run, not just expired ones")
def cache_clean(clean_all: bool) -> None:
    """Remove expired agent run directories."""
    cache = _cache()
    # Shifting "now" past the retention window expires everything.
    now = time.time() + cache.max_age_seconds + 1 if clean_all else None
    removed = cache.clean(now=now)
    click.echo(f"Removed {removed} run director{'y' if removed == 1 else 'ies'} from {cache.root}")
