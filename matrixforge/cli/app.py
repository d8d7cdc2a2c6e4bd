"""Main Typer application — imports and registers all CLI commands.

Entry point: ``matrixforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from matrixforge.cli.commands.container import container_cmd
from matrixforge.cli.commands.release import release_cmd
from matrixforge.cli.commands.summary import summary_cmd
from matrixforge.cli.commands.targets import targets_cmd
from matrixforge.cli.commands.trigger import trigger_cmd
from matrixforge.config import ProdConfig

app = typer.Typer(
    name="matrixforge",
    help="matrixforge: tag-triggered matrix builds and releases.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="targets", help="Validate and list the release targets.")(targets_cmd)
app.command(name="trigger", help="Start a release run for a pushed tag ref.")(trigger_cmd)
app.command(name="release", help="Build every target for a tag and publish.")(release_cmd)
app.command(name="summary", help="Show per-target outcomes of a past run.")(summary_cmd)
app.command(name="container", help="Build the container image variant.")(container_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (default: MATRIXFORGE_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging for every command."""
    level = (log_level or ProdConfig().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
