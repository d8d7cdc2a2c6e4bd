"""``matrixforge container TAG`` — build the container image of the binary."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from matrixforge.backends.commands import SubprocessExecutor
from matrixforge.config import ProdConfig
from matrixforge.core.errors import PackagingError
from matrixforge.release.container import ContainerImageBuilder

console = Console()


def container_cmd(
    tag: str = typer.Argument(..., help="Image tag, usually the release tag."),
    source: Path = typer.Option(Path("."), "--source", "-s", help="Build context."),
    image: str = typer.Option(None, "--image", help="Image name (default: binary name)."),
    binary: str = typer.Option("cgf", "--bin", help="Binary to build."),
    engine: str = typer.Option("docker", "--engine", help="Container engine."),
) -> None:
    """Compile a static binary in a builder image and ship it on alpine."""
    prod_config = ProdConfig()
    builder = ContainerImageBuilder(
        SubprocessExecutor(timeout=prod_config.command_timeout_seconds),
        binary_name=binary,
        engine=engine,
    )
    try:
        ref = builder.build(
            tag,
            source,
            prod_config.workspace_path / "container",
            image=image,
        )
    except PackagingError as exc:
        console.print(f"[bold red]Image build failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    console.print(f"[bold green]Built[/bold green] {ref}")
