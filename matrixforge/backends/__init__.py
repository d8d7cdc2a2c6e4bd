"""Narrow interfaces to the external tools a release run consumes."""

from matrixforge.backends.archive import ArchiveTool, TarGzArchiver
from matrixforge.backends.checkout import (
    CheckoutFailed,
    DirectoryCheckout,
    GitWorktreeCheckout,
    SourceCheckout,
)
from matrixforge.backends.commands import CommandExecutor, CommandResult, SubprocessExecutor

__all__ = [
    "ArchiveTool",
    "TarGzArchiver",
    "CheckoutFailed",
    "DirectoryCheckout",
    "GitWorktreeCheckout",
    "SourceCheckout",
    "CommandExecutor",
    "CommandResult",
    "SubprocessExecutor",
]
