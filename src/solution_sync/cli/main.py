"""Root Typer app for the solution-sync CLI."""

from __future__ import annotations

import typer

app = typer.Typer(
    name="solution-sync",
    help="solution-sync: keep project descriptors and the solution manifest in step with sources.",
    no_args_is_help=True,
)


def _register_commands() -> None:
    """Register all CLI commands."""
    from solution_sync.cli.generate_cmd import generate_cmd, sync_cmd
    from solution_sync.cli.status_cmd import status_cmd
    from solution_sync.cli.watch_cmd import watch_cmd

    app.command(name="generate")(generate_cmd)
    app.command(name="sync")(sync_cmd)
    app.command(name="watch")(watch_cmd)
    app.command(name="status")(status_cmd)


_register_commands()
