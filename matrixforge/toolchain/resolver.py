"""Toolchain resolution — obtain a compiler able to produce a target triple.

Two strategies:

``native``
    Install the standard host toolchain and add the requested triple as an
    extra target of that same compiler.  Builds run with ``cargo``.
``cross``
    The host cannot produce the triple itself.  Ensure the containerised
    ``cross`` front-end and a container runtime are available; the build
    then runs inside an image that bundles a compiler for the triple.

Resolution is idempotent: each install step runs at most once per resolver
instance, guarded by a per-step lock so parallel jobs on one host never
race on shared toolchain state.  Failures surface as ``ResolutionError``
and are never retried automatically.
"""

from __future__ import annotations

import logging
import platform
import threading
from collections.abc import Callable, Mapping
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from matrixforge.backends.commands import CommandExecutor
from matrixforge.core.errors import ResolutionError
from matrixforge.models.targets import TargetSpec, ToolchainStrategy
from matrixforge.toolchain.installers import (
    CargoToolInstaller,
    InstallFailed,
    RustupInstaller,
    ToolchainInstaller,
)

logger = logging.getLogger(__name__)


class ToolchainHandle(BaseModel):
    """A resolved compiler for one target triple."""

    model_config = ConfigDict(frozen=True)

    target_triple: str
    strategy: ToolchainStrategy
    toolchain: str  # e.g. "stable"
    program: str  # build front-end: "cargo" or "cross"
    program_args: list[str] = []  # leading args, e.g. ["+stable"]
    env: dict[str, str] = {}


@runtime_checkable
class ToolchainResolver(Protocol):
    """Protocol for toolchain resolution strategies."""

    def resolve(self, spec: TargetSpec) -> ToolchainHandle:
        """Return a usable toolchain for *spec* or raise ResolutionError."""
        ...


class _InstallOnce:
    """Runs each keyed install step at most once, one caller at a time."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._done: set[str] = set()

    def run(self, key: str, step: Callable[[], None]) -> None:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            if key in self._done:
                return
            step()
            self._done.add(key)

    def is_done(self, key: str) -> bool:
        with self._guard:
            return key in self._done


# Runner label prefix -> ``platform.system()`` of a host that can serve it.
_HOST_SYSTEMS = {
    "ubuntu": "Linux",
    "linux": "Linux",
    "macos": "Darwin",
    "windows": "Windows",
}


def host_system_for(host_os: str) -> str | None:
    """The platform a ``host_os`` label requires, or None for unknown labels."""
    return _HOST_SYSTEMS.get(host_os.split("-", 1)[0].lower())


class NativeToolchainResolver:
    """Host toolchain plus one extra compile target.

    A native build only works on a host of the kind the target names, so
    a ``macos-latest`` target is rejected on a Linux machine before any
    install step runs.  Unknown ``host_os`` labels (self-hosted runners)
    are trusted.

    Parameters
    ----------
    installer:
        rustup-backed installer.
    toolchain:
        Toolchain channel to install (``stable``).
    host_system:
        ``platform.system()`` of the executing host; detected if omitted.
    enforce_host:
        Disable the host check when jobs are already scheduled onto
        matching hosts by an outer matrix.
    """

    def __init__(
        self,
        installer: RustupInstaller,
        toolchain: str = "stable",
        *,
        host_system: str | None = None,
        enforce_host: bool = True,
    ) -> None:
        self._installer = installer
        self.toolchain = toolchain
        self.host_system = host_system or platform.system()
        self.enforce_host = enforce_host
        self._once = _InstallOnce()

    def _check_host(self, spec: TargetSpec) -> None:
        required = host_system_for(spec.host_os)
        if self.enforce_host and required is not None and required != self.host_system:
            raise ResolutionError(
                spec.target_triple,
                f"native build for {spec.host_os} needs a {required} host, "
                f"running on {self.host_system}",
            )

    def resolve(self, spec: TargetSpec) -> ToolchainHandle:
        triple = spec.target_triple
        self._check_host(spec)
        try:
            self._once.run(
                f"toolchain:{self.toolchain}",
                lambda: self._installer.install(self.toolchain),
            )
            self._once.run(
                f"target:{self.toolchain}:{triple}",
                lambda: self._installer.add_target(self.toolchain, triple),
            )
        except InstallFailed as exc:
            raise ResolutionError(triple, str(exc)) from exc

        logger.info("Resolved native toolchain %s for %s", self.toolchain, triple)
        return ToolchainHandle(
            target_triple=triple,
            strategy=ToolchainStrategy.NATIVE,
            toolchain=self.toolchain,
            program="cargo",
            program_args=[f"+{self.toolchain}"],
        )


class CrossToolchainResolver:
    """Containerised build environment via ``cross``.

    Parameters
    ----------
    installer:
        Installs the ``cross`` front-end.
    executor:
        Used to check the container runtime.
    container_engine:
        Runtime binary ``cross`` should drive (``docker`` or ``podman``).
    """

    tool = "cross"

    def __init__(
        self,
        installer: ToolchainInstaller,
        executor: CommandExecutor,
        *,
        toolchain: str = "stable",
        container_engine: str = "docker",
    ) -> None:
        self._installer = installer
        self._executor = executor
        self.toolchain = toolchain
        self.container_engine = container_engine
        self._once = _InstallOnce()

    def _check_engine(self) -> None:
        result = self._executor.execute(self.container_engine, ["info"])
        if not result.ok:
            raise InstallFailed(
                f"container engine {self.container_engine} unavailable "
                f"({result.exit_code}): {result.tail()}"
            )

    def resolve(self, spec: TargetSpec) -> ToolchainHandle:
        triple = spec.target_triple
        try:
            self._once.run(f"tool:{self.tool}", lambda: self._installer.install(self.tool))
            self._once.run(f"engine:{self.container_engine}", self._check_engine)
        except InstallFailed as exc:
            raise ResolutionError(triple, str(exc)) from exc

        logger.info(
            "Resolved %s environment (%s) for %s", self.tool, self.container_engine, triple
        )
        return ToolchainHandle(
            target_triple=triple,
            strategy=ToolchainStrategy.CROSS,
            toolchain=self.toolchain,
            program=self.tool,
            program_args=[f"+{self.toolchain}"],
            env={"CROSS_CONTAINER_ENGINE": self.container_engine},
        )


class ResolverSet:
    """Dispatches resolution to the resolver registered for a strategy."""

    def __init__(self, resolvers: Mapping[ToolchainStrategy, ToolchainResolver]) -> None:
        self._resolvers = dict(resolvers)

    @classmethod
    def default(
        cls,
        executor: CommandExecutor,
        *,
        toolchain: str = "stable",
        profile: str = "minimal",
        host_system: str | None = None,
        enforce_host: bool = True,
    ) -> ResolverSet:
        """rustup for native targets, cross for emulated ones."""
        return cls({
            ToolchainStrategy.NATIVE: NativeToolchainResolver(
                RustupInstaller(executor, profile=profile),
                toolchain=toolchain,
                host_system=host_system,
                enforce_host=enforce_host,
            ),
            ToolchainStrategy.CROSS: CrossToolchainResolver(
                CargoToolInstaller(executor), executor, toolchain=toolchain
            ),
        })

    def resolve(self, spec: TargetSpec) -> ToolchainHandle:
        resolver = self._resolvers.get(spec.toolchain_strategy)
        if resolver is None:
            raise ResolutionError(
                spec.target_triple,
                f"no resolver registered for strategy {spec.toolchain_strategy.value}",
            )
        return resolver.resolve(spec)
