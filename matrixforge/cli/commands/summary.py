"""``matrixforge summary [RUN_ID]`` — show per-target outcomes from the ledger."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from matrixforge.config import ProdConfig
from matrixforge.core.run_ledger import RunLedger
from matrixforge.monitor.projection import RunProjection
from matrixforge.monitor.renderer import SummaryRenderer

console = Console()


def summary_cmd(
    run_id: str = typer.Argument(None, help="Run to show. Defaults to the latest run."),
    ledger_db: Path = typer.Option(
        None, "--ledger", "-l",
        help="Path to the run ledger [default: MATRIXFORGE_LEDGER_PATH].",
    ),
) -> None:
    """Render a past run from the run ledger."""
    ledger_db = ledger_db or ProdConfig().ledger_path
    if not ledger_db.exists():
        console.print(f"[bold red]Ledger not found:[/bold red] {ledger_db}")
        raise typer.Exit(code=1)

    ledger = RunLedger(ledger_db)
    if run_id is None:
        runs = ledger.list_runs()
        if not runs:
            console.print("[dim]No runs recorded.[/dim]")
            raise typer.Exit(code=0)
        run_id = runs[0][0]

    snapshot = RunProjection(ledger).snapshot(run_id)
    if not snapshot.targets:
        console.print(f"[bold red]Run not found:[/bold red] {run_id}")
        raise typer.Exit(code=1)
    SummaryRenderer(console=console).print_snapshot(snapshot)
