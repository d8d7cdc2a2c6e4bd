"""Command execution backends.

Defines the ``CommandExecutor`` Protocol through which every external tool
(``git``, ``rustup``, ``cargo``, ``cross``, ``docker``) is invoked, and the
default ``SubprocessExecutor``.  Tests substitute scripted executors.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

# Conventional shell exit status for "command not found".
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


class CommandResult(BaseModel):
    """Exit status and combined stdout/stderr of one command."""

    model_config = ConfigDict(frozen=True)

    exit_code: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def tail(self, lines: int = 20) -> str:
        """Last *lines* lines of output, for error messages."""
        return "\n".join(self.output.splitlines()[-lines:])


@runtime_checkable
class CommandExecutor(Protocol):
    """Protocol for running an external command."""

    def execute(
        self,
        command: str,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run *command* with *args* and return its result.

        A non-zero exit is reported in the result, not raised.
        """
        ...


class SubprocessExecutor:
    """Runs commands with :func:`subprocess.run`.

    Parameters
    ----------
    timeout:
        Per-command timeout in seconds. ``None`` waits forever.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    def execute(
        self,
        command: str,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = [command, *args]
        merged_env = {**os.environ, **env} if env else None
        logger.debug("exec: %s (cwd=%s)", " ".join(argv), cwd)
        try:
            proc = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError:
            return CommandResult(
                exit_code=EXIT_NOT_FOUND, output=f"{command}: command not found"
            )
        except subprocess.TimeoutExpired as exc:
            return CommandResult(
                exit_code=EXIT_TIMEOUT,
                output=f"{command}: timed out after {exc.timeout}s",
            )
        return CommandResult(exit_code=proc.returncode, output=proc.stdout or "")
