"""Options and setup shared by the CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler

from solution_sync.config import Config
from solution_sync.exceptions import ConfigError

console = Console()

ProjectOption = Annotated[
    Path,
    typer.Option(
        "--project",
        "-p",
        help="Project root (holds the source directory and receives the artifacts).",
        file_okay=False,
    ),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def load_config(project: Path) -> Config:
    """Config for *project*, or exit 1 with the error printed."""
    try:
        return Config.load(project)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(code=1) from e
