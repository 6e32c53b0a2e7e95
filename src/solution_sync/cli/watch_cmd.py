"""CLI watch command: keep artifacts in sync until interrupted."""

from __future__ import annotations

import time
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
from solution_sync.sync.types import ChangeBatch


def _wait_for_interrupt() -> None:
    while True:
        time.sleep(1.0)


def _on_changes(batch: ChangeBatch) -> None:
    for path, kind in batch:
        console.print(f"  {kind.value:<8} {path}")


def _on_generated(report: GenerationReport) -> None:
    if report.written:
        console.print(f"[green]Updated:[/green] {', '.join(report.written)}")
    for name, reason in sorted(report.failed.items()):
        console.print(f"[red]Failed:[/red] {name}: {reason}")


def watch_cmd(
    project: ProjectOption = Path("."),
    verbose: VerboseOption = False,
) -> None:
    """Watch the source tree and regenerate artifacts as files change."""
    setup_logging(verbose)
    config = load_config(project)
    engine = SyncEngine(config, on_changes=_on_changes, on_generated=_on_generated)
    if not engine.initialize():
        console.print("[yellow]Sync is disabled (enable_sync = false).[/yellow]")
        raise typer.Exit(code=1)

    engine.generate_all()
    console.print(f"Watching {config.source_root} (Ctrl+C to stop)")
    try:
        _wait_for_interrupt()
    except KeyboardInterrupt:
        console.print("Stopping")
    finally:
        engine.shutdown()
