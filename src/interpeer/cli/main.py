"""interpeer - root CLI for the review router."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import click

from .. import __version__
from ..core.config import BUILTIN_AGENT_IDS
from ..server import PROJECT_ROOT_ENV, serve
from ..utils.logging import setup_logging
from .agents import agents_cli

_PROJECT_ROOT = click.Path(exists=True, file_okay=False, dir_okay=True)


def build_codex_config(project_root: str | Path, command: str = "interpeer-mcp") -> dict:
    """MCP client entry for launching this server from Codex."""
    return {
        "name": "interpeer",
        "command": command or "interpeer-mcp",
        "args": [],
        "env": {PROJECT_ROOT_ENV: str(Path(project_root).resolve())},
    }


@click.group()
def cli() -> None:
    """Interpeer - route review requests to peer agents."""


@cli.command()
def version() -> None:
    """Print the CLI version."""
    click.echo(__version__)


cli.add_command(agents_cli, name="agents")


@cli.group()
def mcp() -> None:
    """Manage the MCP server and client configs."""


@mcp.command("serve")
@click.option("--project-root", type=_PROJECT_ROOT, help=f"Override {PROJECT_ROOT_ENV}")
@click.option("--config", "config_path", type=str, help="Use an alternate config file")
@click.option("--default-agent", type=click.Choice(BUILTIN_AGENT_IDS), help="Agent used when a request names none")
@click.option("--default-model", type=str, help="Model used when a request names no agent")
def serve_command(
    project_root: Optional[str],
    config_path: Optional[str],
    default_agent: Optional[str],
    default_model: Optional[str],
) -> None:
    """Launch the MCP server over stdio."""
    setup_logging()
    asyncio.run(
        serve(
            project_root=project_root,
            config_path=config_path,
            default_agent=default_agent,
            default_model=default_model,
        )
    )


@mcp.group("config")
def config_group() -> None:
    """Print client configuration snippets."""


@config_group.command("codex")
@click.option("--project-root", type=_PROJECT_ROOT, default=".", help="Value for INTERPEER_PROJECT_ROOT")
@click.option("--command", type=str, default="interpeer-mcp", help="Executable that starts the server")
def codex_config(project_root: str, command: str) -> None:
    """Print the Codex MCP configuration JSON snippet."""
    click.echo(json.dumps(build_codex_config(project_root, command), indent=2))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
