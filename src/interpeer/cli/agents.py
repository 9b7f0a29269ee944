"""interpeer-agents - manage agent defaults and adapter overrides.

Every mutation reads the project's config file, applies one change through
the registry helpers, and writes the file back. Nothing is written when a
change is rejected.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import click
import yaml
from rich.console import Console
from rich.markup import escape

from ..core import registry
from ..core.config import BUILTIN_AGENT_IDS, load_config, resolve_config_path
from ..core.errors import InterpeerError
from ..models.config import ResolvedConfig

console = Console(soft_wrap=True, highlight=False)
err_console = Console(stderr=True, soft_wrap=True, highlight=False)


class StrictCommand(click.Command):
    """Command that rejects a flag given more than once."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        seen: set[str] = set()
        for token in args:
            if token == "--":
                break
            if not token.startswith("--"):
                continue
            flag = token.split("=", 1)[0]
            if flag in seen:
                raise click.UsageError(f"Flag {flag} specified multiple times", ctx=ctx)
            seen.add(flag)
        return super().parse_args(ctx, args)


class StrictGroup(click.Group):
    command_class = StrictCommand


@dataclass
class CliSettings:
    project_root: Path
    config_override: Optional[str]

    @property
    def config_path(self) -> Path:
        return resolve_config_path(self.project_root, os.environ, self.config_override).path

    def merged(self) -> ResolvedConfig:
        return load_config(self.project_root, env=os.environ, config_path=self.config_override)


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]ERROR[/red] {escape(message)}")
    raise click.exceptions.Exit(1)


def _require_value(value: Optional[str], flag: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        raise click.UsageError(f"{flag} cannot be empty")
    return trimmed


def _settings(ctx: click.Context, project_root: Optional[str], config: Optional[str]) -> CliSettings:
    parent: CliSettings = ctx.obj
    root = Path(project_root).resolve() if project_root else parent.project_root
    override = parent.config_override
    if config is not None:
        override = _require_value(config, "--config")
    return CliSettings(project_root=root, config_override=override)


_PROJECT_ROOT = click.Path(exists=True, file_okay=False, dir_okay=True)


def global_options(func):
    func = click.option("--config", type=str, help="Use a custom interpeer config file")(func)
    func = click.option(
        "--project-root", type=_PROJECT_ROOT, help="Resolve configuration relative to this project"
    )(func)
    return func


@click.group(cls=StrictGroup, invoke_without_command=True)
@global_options
@click.pass_context
def agents_cli(ctx: click.Context, project_root: Optional[str], config: Optional[str]) -> None:
    """Manage interpeer agent defaults and adapter overrides.

    Built-in adapter ids (claude, codex, factory) are reserved; use
    set-agent to modify them. Pass an empty --model to set-default to clear
    the default model.
    """
    root = Path(project_root).resolve() if project_root else Path.cwd().resolve()
    override = _require_value(config, "--config") if config is not None else None
    ctx.obj = CliSettings(project_root=root, config_override=override)
    if ctx.invoked_subcommand is None:
        ctx.invoke(list_command)


@agents_cli.command("list")
@global_options
@click.pass_context
def list_command(ctx: click.Context, project_root: Optional[str], config: Optional[str]) -> None:
    """Show current defaults and available adapters."""
    settings = _settings(ctx, project_root, config)
    try:
        merged = settings.merged()
    except InterpeerError as e:
        _fail(e.message)

    console.print("[bold]Interpeer MCP configuration[/bold]")
    console.print(f"Project root: {escape(str(settings.project_root))}")
    console.print(f"Config file: {escape(str(settings.config_path))}")
    console.print(f"Default agent: {merged.defaults.agent}")
    console.print(f"Default model: {escape(merged.defaults.model or 'inherit (agent specific)')}")
    console.print(f"Configured agents: {', '.join(merged.agents)}")


@agents_cli.command("list-agents")
@global_options
@click.pass_context
def list_agents(ctx: click.Context, project_root: Optional[str], config: Optional[str]) -> None:
    """Show detailed adapter configuration."""
    settings = _settings(ctx, project_root, config)
    try:
        merged = settings.merged()
    except InterpeerError as e:
        _fail(e.message)

    rendered = {
        agent_id: agent.model_dump(mode="json", by_alias=True, exclude_none=True)
        for agent_id, agent in merged.agents.items()
    }
    console.print("[bold]Configured agents[/bold]")
    console.print(escape(yaml.safe_dump(rendered, sort_keys=False, default_flow_style=False)), end="")


@agents_cli.command("set-default")
@global_options
@click.option("--agent", type=str, help=f"One of: {', '.join(BUILTIN_AGENT_IDS)}")
@click.option("--model", type=str, help='Default model; "" clears it')
@click.pass_context
def set_default(
    ctx: click.Context,
    project_root: Optional[str],
    config: Optional[str],
    agent: Optional[str],
    model: Optional[str],
) -> None:
    """Update the default agent and/or model."""
    settings = _settings(ctx, project_root, config)
    if agent is not None:
        agent = _require_value(agent, "--agent")
    path = settings.config_path
    try:
        overrides = registry.load_config_overrides(path)
        updated = registry.set_defaults(overrides, agent=agent, model=model)
    except InterpeerError as e:
        _fail(e.message)
    registry.save_config_file(path, updated)
    console.print(f"[green]Updated[/green] config at {escape(str(path))}")


@agents_cli.command("set-agent")
@global_options
@click.option("--id", "agent_id", required=True, help="Agent id or built-in config key")
@click.option("--command", type=str, help="Executable to invoke")
@click.option("--model", type=str, help="Model identifier")
@click.pass_context
def set_agent(
    ctx: click.Context,
    project_root: Optional[str],
    config: Optional[str],
    agent_id: str,
    command: Optional[str],
    model: Optional[str],
) -> None:
    """Override the command or model of an existing adapter."""
    settings = _settings(ctx, project_root, config)
    if command is not None:
        command = _require_value(command, "--command")
    if model is not None:
        model = _require_value(model, "--model")
    if not command and not model:
        raise click.UsageError("set-agent requires at least one of --command or --model")

    path = settings.config_path
    try:
        agent_id = registry.validate_agent_id(agent_id)
        overrides = registry.load_config_overrides(path)
        updated = registry.set_agent(overrides, settings.merged(), agent_id, command=command, model=model)
    except InterpeerError as e:
        _fail(e.message)
    registry.save_config_file(path, updated)
    console.print(f"[green]Updated[/green] agent '{agent_id}' in {escape(str(path))}")


@agents_cli.command("add-agent")
@global_options
@click.option("--id", "agent_id", required=True, help="New agent id")
@click.option("--command", required=True, help="Executable to invoke")
@click.option("--model", required=True, help="Model identifier")
@click.option("--max-attempts", type=click.IntRange(min=1), help="Retry attempts")
@click.option("--base-delay", type=click.IntRange(min=0), help="Base backoff delay in ms")
@click.pass_context
def add_agent(
    ctx: click.Context,
    project_root: Optional[str],
    config: Optional[str],
    agent_id: str,
    command: str,
    model: str,
    max_attempts: Optional[int],
    base_delay: Optional[int],
) -> None:
    """Register a new custom adapter."""
    settings = _settings(ctx, project_root, config)
    command = _require_value(command, "--command")
    model = _require_value(model, "--model")
    retry: dict = {}
    if max_attempts is not None:
        retry["maxAttempts"] = max_attempts
    if base_delay is not None:
        retry["baseDelayMs"] = base_delay

    path = settings.config_path
    try:
        agent_id = registry.validate_agent_id(agent_id)
        overrides = registry.load_config_overrides(path)
        updated = registry.add_agent(
            overrides, settings.merged(), agent_id, command, model, retry=retry or None
        )
    except InterpeerError as e:
        _fail(e.message)
    registry.save_config_file(path, updated)
    console.print(f"[green]Added[/green] agent '{agent_id}' to {escape(str(path))}")


@agents_cli.command("remove-agent")
@global_options
@click.option("--id", "agent_id", required=True, help="Agent id to remove")
@click.pass_context
def remove_agent(
    ctx: click.Context,
    project_root: Optional[str],
    config: Optional[str],
    agent_id: str,
) -> None:
    """Delete an adapter override from the config file."""
    settings = _settings(ctx, project_root, config)
    path = settings.config_path
    try:
        agent_id = registry.validate_agent_id(agent_id)
        overrides = registry.load_config_overrides(path)
        updated = registry.remove_agent(overrides, agent_id)
    except InterpeerError as e:
        _fail(e.message)
    registry.save_config_file(path, updated)
    console.print(f"[green]Removed[/green] agent '{agent_id}' from {escape(str(path))}")


def main() -> None:
    agents_cli()


if __name__ == "__main__":
    main()
