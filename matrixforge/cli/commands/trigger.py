"""``matrixforge trigger REF`` — react to a pushed ref.

Release tags (``v<major>.<minor>.<patch>``) start exactly one run; any
other ref starts none and exits 0.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from matrixforge.cli.commands.release import EXIT_CONFIG_ERROR, build_orchestrator, report
from matrixforge.core.errors import ConfigurationError
from matrixforge.core.trigger import release_tag_from_ref

console = Console()


def trigger_cmd(
    ref: str = typer.Argument(..., help="Pushed ref, e.g. refs/tags/v1.2.3 or main."),
    source: Path = typer.Option(Path("."), "--source", "-s", help="Source repository."),
    workspace: Path = typer.Option(
        None, "--workspace", "-w",
        help="Working directory for jobs [default: MATRIXFORGE_WORKSPACE_PATH].",
    ),
    ledger_db: Path = typer.Option(
        None, "--ledger", "-l",
        help="Path to the run ledger [default: MATRIXFORGE_LEDGER_PATH].",
    ),
    binary: str = typer.Option("cgf", "--bin", help="Binary to build and package."),
    repository: str = typer.Option(
        None, "--repository", "-r", help="GitHub repository owner/name."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Publish to an in-memory host instead of GitHub."
    ),
) -> None:
    """Start a release run if REF is a release tag."""
    if release_tag_from_ref(ref) is None:
        console.print(f"[dim]{ref} is not a release tag; no run started.[/dim]")
        raise typer.Exit(code=0)

    try:
        orchestrator = build_orchestrator(
            source=source,
            workspace=workspace,
            ledger_db=ledger_db,
            binary=binary,
            dry_run=dry_run,
            max_workers=None,
            repository=repository,
        )
        summary = orchestrator.handle_push(ref)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
    if summary is not None:
        report(summary)
