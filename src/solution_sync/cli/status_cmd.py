"""CLI status command: modules, identifiers and artifact state."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from solution_sync.cli.common import ProjectOption, console, load_config
from solution_sync.generation.identifiers import derive_id, format_id
from solution_sync.graph.enumerator import DefinitionEnumerator
from solution_sync.graph.models import DependencyGraph


def status_cmd(project: ProjectOption = Path(".")) -> None:
    """Show the modules found in the project and whether their descriptors exist."""
    config = load_config(project)

    console.print("[bold]solution-sync status[/bold]\n")
    console.print(f"Project:  {config.project_dir}")
    console.print(f"Sources:  {config.source_root}")
    present = config.manifest_path.exists()
    manifest_state = "[green]present[/green]" if present else "[red]missing[/red]"
    console.print(f"Manifest: {config.manifest_path.name} ({manifest_state})")
    console.print()

    if not config.source_root.is_dir():
        console.print("[red]Source directory not found.[/red]")
        raise typer.Exit(code=1)

    graph = DependencyGraph(DefinitionEnumerator(config).enumerate_modules())
    if not graph:
        console.print("[dim]No modules found.[/dim]")
        return

    table = Table(title="Modules")
    table.add_column("Module", style="cyan")
    table.add_column("Identifier")
    table.add_column("Files", justify="right")
    table.add_column("References")
    table.add_column("Descriptor")
    for module in graph:
        descriptor = config.descriptor_path(module.name)
        table.add_row(
            module.name,
            format_id(derive_id(module.name)),
            str(len(module.source_files)),
            ", ".join(sorted(module.module_references)) or "-",
            "[green]yes[/green]" if descriptor.exists() else "[red]no[/red]",
        )
    console.print(table)
