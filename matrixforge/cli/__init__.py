"""matrixforge CLI — Typer-based command-line interface.

Provides the ``matrixforge`` command with subcommands for validating the
target matrix, reacting to pushed refs, running releases, inspecting past
runs and building the container image.

All output uses Rich for formatted terminal display.
"""
