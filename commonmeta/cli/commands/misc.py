"""version and update-ghost-post."""

from __future__ import annotations

import typer

from commonmeta import __version__
from commonmeta.cli.console import safe_cli_command
from commonmeta.ghost import update_ghost_post


def version_command() -> None:
    """Print the version."""
    typer.echo(f"Commonmeta v{__version__}")


@safe_cli_command
def update_ghost_post_command(
    pid: str = typer.Argument(..., help="Rogue Scholar record id or post URL"),
    api_key: str = typer.Option(..., "--api-key", help="Ghost Admin API key (id:secret)"),
    api_url: str = typer.Option(..., "--api-url", help="Ghost Admin API URL"),
) -> None:
    """Point the canonical URL of a Ghost post at its DOI."""
    typer.echo(update_ghost_post(pid, api_key, api_url))
