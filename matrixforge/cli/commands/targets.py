"""``matrixforge targets`` — validate and list the build matrix."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from matrixforge.core.errors import ConfigurationError
from matrixforge.core.registry import TargetRegistry

console = Console()


def targets_cmd() -> None:
    """Validate the target registry and print it."""
    try:
        registry = TargetRegistry()
    except ConfigurationError as exc:
        console.print(f"[bold red]Invalid registry:[/bold red] {exc}")
        raise typer.Exit(code=2)

    table = Table(title="Release Targets")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Target triple", style="cyan")
    table.add_column("Host OS", style="green")
    table.add_column("Strategy")

    for i, spec in enumerate(registry.list_targets()):
        table.add_row(str(i), spec.target_triple, spec.host_os, spec.toolchain_strategy.value)

    console.print(table)
