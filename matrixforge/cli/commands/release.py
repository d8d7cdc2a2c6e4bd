"""``matrixforge release TAG`` — build the whole matrix for a tag and publish.

Exit codes: 0 for success and degraded success, 1 when no target
succeeded or nothing could be published, 2 for configuration errors.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from matrixforge.config import ProdConfig
from matrixforge.core.errors import ConfigurationError
from matrixforge.core.orchestrator import Orchestrator
from matrixforge.core.registry import TargetRegistry
from matrixforge.models.config import PipelineConfig
from matrixforge.models.jobs import RunSummary
from matrixforge.monitor.renderer import SummaryRenderer
from matrixforge.release.hosting import GitHubReleaseHost, InMemoryReleaseHost, ReleaseHost

console = Console()

EXIT_CONFIG_ERROR = 2


def build_orchestrator(
    *,
    source: Path,
    workspace: Path | None,
    ledger_db: Path | None,
    binary: str,
    dry_run: bool,
    max_workers: int | None,
    repository: str | None,
) -> Orchestrator:
    """Assemble an Orchestrator from CLI options and MATRIXFORGE_* settings.

    Paths left as None fall back to MATRIXFORGE_WORKSPACE_PATH and
    MATRIXFORGE_LEDGER_PATH.  Raises ConfigurationError for an invalid
    registry or missing publishing credentials.
    """
    prod_config = ProdConfig()
    if repository:
        prod_config = prod_config.model_copy(update={"github_repository": repository})
    host: ReleaseHost
    if dry_run:
        host = InMemoryReleaseHost()
    else:
        if not prod_config.can_publish:
            raise ConfigurationError(
                "Publishing needs MATRIXFORGE_GITHUB_TOKEN and a repository "
                "(--repository or MATRIXFORGE_GITHUB_REPOSITORY); use --dry-run to skip."
            )
        host = GitHubReleaseHost(
            prod_config.github_repository,
            prod_config.github_token,
            api_url=prod_config.github_api_url,
            uploads_url=prod_config.github_uploads_url,
            timeout=prod_config.request_timeout_seconds,
        )

    config = PipelineConfig(
        binary_name=binary,
        source_path=source,
        workspace_path=workspace or prod_config.workspace_path,
        ledger_db_path=ledger_db or prod_config.ledger_path,
        max_workers=max_workers,
    )
    return Orchestrator.from_config(
        config, host=host, prod_config=prod_config, registry=TargetRegistry()
    )


def report(summary: RunSummary) -> None:
    """Print the run summary and exit with the run's status."""
    console.print()
    SummaryRenderer(console=console).print_summary(summary)
    raise typer.Exit(code=summary.exit_code)


def release_cmd(
    tag: str = typer.Argument(..., help="Release tag, e.g. v1.2.3."),
    source: Path = typer.Option(
        Path("."), "--source", "-s", help="Source repository to build."
    ),
    workspace: Path = typer.Option(
        None, "--workspace", "-w",
        help="Working directory for jobs [default: MATRIXFORGE_WORKSPACE_PATH].",
    ),
    ledger_db: Path = typer.Option(
        None, "--ledger", "-l",
        help="Path to the run ledger [default: MATRIXFORGE_LEDGER_PATH].",
    ),
    binary: str = typer.Option("cgf", "--bin", help="Binary to build and package."),
    max_workers: int = typer.Option(
        None, "--max-workers", help="Cap on concurrent jobs (default: one per target)."
    ),
    repository: str = typer.Option(
        None, "--repository", "-r", help="GitHub repository owner/name."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Publish to an in-memory host instead of GitHub."
    ),
) -> None:
    """Build, test and package every target for TAG, then publish one release."""
    try:
        orchestrator = build_orchestrator(
            source=source,
            workspace=workspace,
            ledger_db=ledger_db,
            binary=binary,
            dry_run=dry_run,
            max_workers=max_workers,
            repository=repository,
        )
        console.print(f"[bold cyan]Releasing {tag}...[/bold cyan]")
        summary = orchestrator.run(tag)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR)
    report(summary)
