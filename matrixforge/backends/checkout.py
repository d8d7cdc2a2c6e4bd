"""Source checkout backends.

Every job gets its own working tree so parallel jobs never share build
output.  ``GitWorktreeCheckout`` adds a detached worktree of the tagged
revision; ``DirectoryCheckout`` copies a local tree (useful when the
source is not a git repository).  Trees are dropped with ``remove()`` once
the job's outcome is recorded.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

from matrixforge.backends.commands import CommandExecutor

logger = logging.getLogger(__name__)


class CheckoutFailed(RuntimeError):
    """Raised by a checkout backend when the tree cannot be produced."""


@runtime_checkable
class SourceCheckout(Protocol):
    """Protocol for producing a working tree of a revision."""

    def checkout(self, revision: str, destination: Path) -> Path:
        """Materialize *revision* at *destination* and return the tree path."""
        ...

    def remove(self, destination: Path) -> None:
        """Drop a tree produced by ``checkout``. Missing trees are ignored."""
        ...


class GitWorktreeCheckout:
    """Checks out a revision as a detached ``git worktree``.

    Parameters
    ----------
    repo_path:
        Path of the repository the tag was pushed to.
    executor:
        Runs ``git``.
    """

    def __init__(self, repo_path: Path, executor: CommandExecutor) -> None:
        self.repo_path = Path(repo_path)
        self._executor = executor

    def checkout(self, revision: str, destination: Path) -> Path:
        destination = Path(destination)
        if destination.exists():
            # A re-run of the same tag reuses the path; drop the stale worktree.
            self.remove(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)

        result = self._executor.execute(
            "git",
            ["worktree", "add", "--detach", str(destination), revision],
            cwd=self.repo_path,
        )
        if not result.ok:
            raise CheckoutFailed(
                f"git worktree add {revision} failed ({result.exit_code}): {result.tail()}"
            )
        logger.debug("Checked out %s at %s", revision, destination)
        return destination

    def remove(self, destination: Path) -> None:
        destination = Path(destination)
        result = self._executor.execute(
            "git",
            ["worktree", "remove", "--force", str(destination)],
            cwd=self.repo_path,
        )
        if not result.ok:
            logger.debug("git worktree remove %s: %s", destination, result.tail())
        shutil.rmtree(destination, ignore_errors=True)


class DirectoryCheckout:
    """Copies a local source tree; the revision is informational only."""

    ignored = (".git", "target", ".matrixforge")

    def __init__(self, source_path: Path) -> None:
        self.source_path = Path(source_path)

    def checkout(self, revision: str, destination: Path) -> Path:
        if not self.source_path.is_dir():
            raise CheckoutFailed(f"Source directory not found: {self.source_path}")
        destination = Path(destination)
        if destination.exists():
            shutil.rmtree(destination)
        shutil.copytree(
            self.source_path, destination, ignore=shutil.ignore_patterns(*self.ignored)
        )
        logger.debug("Copied %s (%s) to %s", self.source_path, revision, destination)
        return destination

    def remove(self, destination: Path) -> None:
        shutil.rmtree(destination, ignore_errors=True)
