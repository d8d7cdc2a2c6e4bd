"""Target registry — the static, validated build matrix.

The registry is fixed at construction time and validated immediately, so
a malformed or duplicate triple aborts configuration before any job is
created.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from matrixforge.core.errors import ConfigurationError
from matrixforge.models.targets import TargetSpec, ToolchainStrategy, is_well_formed_triple

logger = logging.getLogger(__name__)


# The standard release matrix.
DEFAULT_TARGETS: tuple[TargetSpec, ...] = (
    TargetSpec(
        host_os="macos-latest",
        target_triple="x86_64-apple-darwin",
        toolchain_strategy=ToolchainStrategy.NATIVE,
    ),
    TargetSpec(
        host_os="windows-latest",
        target_triple="x86_64-pc-windows-msvc",
        toolchain_strategy=ToolchainStrategy.NATIVE,
    ),
    TargetSpec(
        host_os="ubuntu-latest",
        target_triple="x86_64-unknown-linux-gnu",
        toolchain_strategy=ToolchainStrategy.NATIVE,
    ),
)


class TargetRegistry:
    """Ordered, immutable collection of TargetSpecs.

    Parameters
    ----------
    targets:
        The matrix entries, in run order. Defaults to ``DEFAULT_TARGETS``.

    Raises
    ------
    ConfigurationError
        If the registry is empty, or any triple is malformed or duplicated.
    """

    def __init__(self, targets: Iterable[TargetSpec] | None = None) -> None:
        self._targets: tuple[TargetSpec, ...] = tuple(
            DEFAULT_TARGETS if targets is None else targets
        )
        self.validate()

    def validate(self) -> None:
        """Check every triple for well-formedness and uniqueness."""
        if not self._targets:
            raise ConfigurationError("Target registry is empty")

        problems: list[str] = []
        seen: set[str] = set()
        for spec in self._targets:
            triple = spec.target_triple
            if not is_well_formed_triple(triple):
                problems.append(f"malformed target triple {triple!r}")
            if triple in seen:
                problems.append(f"duplicate target triple {triple!r}")
            seen.add(triple)

        if problems:
            raise ConfigurationError(
                "Invalid target registry: " + "; ".join(problems)
            )
        logger.debug("Target registry validated: %d targets", len(self._targets))

    def list_targets(self) -> tuple[TargetSpec, ...]:
        return self._targets

    def get(self, target_triple: str) -> TargetSpec:
        for spec in self._targets:
            if spec.target_triple == target_triple:
                return spec
        raise KeyError(target_triple)

    def __len__(self) -> int:
        return len(self._targets)

    def __iter__(self):
        return iter(self._targets)

    def __repr__(self) -> str:
        triples = ", ".join(t.target_triple for t in self._targets)
        return f"<TargetRegistry [{triples}]>"
