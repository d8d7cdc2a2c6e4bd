"""Shared test fixtures for matrixforge."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

import pytest

from matrixforge.backends.checkout import DirectoryCheckout
from matrixforge.backends.commands import CommandResult
from matrixforge.build.packager import Packager
from matrixforge.build.runner import BuildRunner
from matrixforge.core.orchestrator import Orchestrator
from matrixforge.core.registry import TargetRegistry
from matrixforge.core.run_ledger import RunLedger
from matrixforge.models.config import PipelineConfig
from matrixforge.release.hosting import InMemoryReleaseHost
from matrixforge.release.publisher import ReleasePublisher
from matrixforge.toolchain.resolver import ResolverSet

Predicate = Callable[[str, list[str], "Path | None"], bool]


class FakeExecutor:
    """Scripted CommandExecutor.

    Records every call.  Commands succeed unless a registered failure
    predicate matches.  A successful ``cargo``/``cross`` build writes an
    executable fake binary where the compiler would have put it.
    """

    def __init__(self, binary_name: str = "cgf") -> None:
        self.binary_name = binary_name
        self.create_binaries = True
        self.calls: list[tuple[str, list[str], Path | None]] = []
        self._failures: list[tuple[Predicate, CommandResult]] = []
        self._lock = threading.Lock()

    def fail(self, predicate: Predicate, exit_code: int = 1, output: str = "boom") -> None:
        self._failures.append(
            (predicate, CommandResult(exit_code=exit_code, output=output))
        )

    def execute(
        self,
        command: str,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        args = list(args)
        with self._lock:
            self.calls.append((command, args, cwd))
        for predicate, result in self._failures:
            if predicate(command, args, cwd):
                return result

        if command in ("cargo", "cross") and "build" in args and cwd and self.create_binaries:
            triple = args[args.index("--target") + 1]
            suffix = ".exe" if "-windows-" in triple else ""
            binary = Path(cwd) / "target" / triple / "release" / f"{self.binary_name}{suffix}"
            binary.parent.mkdir(parents=True, exist_ok=True)
            binary.write_bytes(b"\x7fELF fake binary for " + triple.encode())
            binary.chmod(0o755)
        return CommandResult(exit_code=0, output="ok")

    def calls_to(self, command: str, *subcommand: str) -> list[tuple[str, list[str], Path | None]]:
        """Calls of *command* whose args contain every *subcommand* word."""
        return [
            call for call in self.calls
            if call[0] == command and all(word in call[1] for word in subcommand)
        ]


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def source_tree(tmp_dir: Path) -> Path:
    """A minimal crate to 'check out'."""
    root = tmp_dir / "project"
    (root / "src").mkdir(parents=True)
    (root / "Cargo.toml").write_text('[package]\nname = "cgf"\nversion = "1.2.3"\n')
    (root / "src" / "main.rs").write_text("fn main() {}\n")
    return root


@pytest.fixture
def pipeline_config(tmp_dir: Path, source_tree: Path) -> PipelineConfig:
    return PipelineConfig(
        source_path=source_tree,
        workspace_path=tmp_dir / "work",
        ledger_db_path=tmp_dir / "ledger.db",
    )


@pytest.fixture
def ledger(tmp_dir: Path) -> RunLedger:
    """Provide a fresh RunLedger backed by a temp SQLite database."""
    return RunLedger(tmp_dir / "test_ledger.db")


@pytest.fixture
def host() -> InMemoryReleaseHost:
    return InMemoryReleaseHost()


@pytest.fixture
def make_orchestrator(
    executor: FakeExecutor,
    pipeline_config: PipelineConfig,
    host: InMemoryReleaseHost,
) -> Callable[..., Orchestrator]:
    """Factory fixture: an Orchestrator wired to fakes, overridable per test."""

    def _factory(
        registry: TargetRegistry | None = None,
        **overrides,
    ) -> Orchestrator:
        parts = {
            "registry": registry or TargetRegistry(),
            "resolvers": ResolverSet.default(executor, enforce_host=False),
            "runner": BuildRunner(executor),
            "packager": Packager(pipeline_config.dist_dir),
            "publisher": ReleasePublisher(host),
            "checkout": DirectoryCheckout(pipeline_config.source_path),
            "config": pipeline_config,
            "ledger": RunLedger(pipeline_config.ledger_db_path),
        }
        parts.update(overrides)
        return Orchestrator(**parts)

    return _factory
