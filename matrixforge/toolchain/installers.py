"""Toolchain installer backends.

``RustupInstaller`` installs compiler toolchains and extra targets;
``CargoToolInstaller`` installs build front-ends such as ``cross``.  Both
raise ``InstallFailed`` on a non-zero exit and leave retrying to a human.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from matrixforge.backends.commands import CommandExecutor

logger = logging.getLogger(__name__)


class InstallFailed(RuntimeError):
    """Raised when an installer command exits non-zero."""


@runtime_checkable
class ToolchainInstaller(Protocol):
    """Protocol for installing a named toolchain or tool."""

    def install(self, toolchain_name: str) -> None:
        """Install *toolchain_name*; a no-op if it is already present."""
        ...


class RustupInstaller:
    """Installs toolchains and targets through ``rustup``.

    Parameters
    ----------
    executor:
        Runs ``rustup``.
    profile:
        rustup profile for new toolchains (``minimal`` skips docs).
    """

    def __init__(self, executor: CommandExecutor, profile: str = "minimal") -> None:
        self._executor = executor
        self.profile = profile

    def install(self, toolchain_name: str) -> None:
        result = self._executor.execute(
            "rustup",
            ["toolchain", "install", toolchain_name, "--profile", self.profile],
        )
        if not result.ok:
            raise InstallFailed(
                f"rustup toolchain install {toolchain_name} failed "
                f"({result.exit_code}): {result.tail()}"
            )
        logger.info("Installed toolchain %s (profile %s)", toolchain_name, self.profile)

    def add_target(self, toolchain_name: str, target_triple: str) -> None:
        """Add *target_triple* as a compile target of *toolchain_name*."""
        result = self._executor.execute(
            "rustup",
            ["target", "add", "--toolchain", toolchain_name, target_triple],
        )
        if not result.ok:
            raise InstallFailed(
                f"rustup target add {target_triple} failed "
                f"({result.exit_code}): {result.tail()}"
            )
        logger.info("Added target %s to toolchain %s", target_triple, toolchain_name)


class CargoToolInstaller:
    """Installs cargo subcommands such as ``cross``."""

    def __init__(self, executor: CommandExecutor) -> None:
        self._executor = executor

    def install(self, toolchain_name: str) -> None:
        result = self._executor.execute(
            "cargo", ["install", toolchain_name, "--locked"]
        )
        if not result.ok:
            raise InstallFailed(
                f"cargo install {toolchain_name} failed "
                f"({result.exit_code}): {result.tail()}"
            )
        logger.info("Installed build tool %s", toolchain_name)
