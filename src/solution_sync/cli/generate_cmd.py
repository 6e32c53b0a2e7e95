"""CLI generate/sync commands: one-shot artifact generation."""

from __future__ import annotations

from pathlib import Path

import typer

from solution_sync.cli.common import (
    ProjectOption,
    VerboseOption,
    console,
    load_config,
    setup_logging,
)
from solution_sync.generation.project import GenerationReport
from solution_sync.sync.engine import SyncEngine


def _print_report(report: GenerationReport) -> None:
    console.print(
        f"[bold]{report.modules}[/bold] modules: "
        f"[green]{len(report.written)} written[/green], "
        f"{len(report.unchanged)} unchanged"
    )
    for name, reason in sorted(report.failed.items()):
        console.print(f"[red]Failed:[/red] {name}: {reason}")
    if not report.ok:
        raise typer.Exit(code=1)


def generate_cmd(
    project: ProjectOption = Path("."),
    verbose: VerboseOption = False,
) -> None:
    """Generate every descriptor and the manifest."""
    setup_logging(verbose)
    engine = SyncEngine(load_config(project))
    _print_report(engine.generate_all())


def sync_cmd(
    project: ProjectOption = Path("."),
    verbose: VerboseOption = False,
) -> None:
    """Rescan the source tree from scratch, then regenerate everything."""
    setup_logging(verbose)
    engine = SyncEngine(load_config(project))
    _print_report(engine.force_sync())
