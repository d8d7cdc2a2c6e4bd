"""Build target models — one immutable TargetSpec per matrix entry."""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

# arch-vendor-os[-abi], lowercase.  x86_64-apple-darwin has no abi component.
TRIPLE_PATTERN = re.compile(r"^[a-z0-9_.]+-[a-z0-9_.]+-[a-z0-9_.]+(-[a-z0-9_.]+)?$")


class ToolchainStrategy(str, Enum):
    """How a compiler for the target triple is obtained."""

    NATIVE = "native"  # host toolchain plus an extra target
    CROSS = "cross"  # containerised build environment


class TargetSpec(BaseModel):
    """One (host OS, target triple, toolchain strategy) matrix entry.

    Identity is ``target_triple``; it must be unique within a registry.
    Well-formedness is checked by ``TargetRegistry`` so that a bad entry
    surfaces as a ``ConfigurationError`` rather than a model error.
    """

    model_config = ConfigDict(frozen=True)

    host_os: str
    target_triple: str
    toolchain_strategy: ToolchainStrategy = ToolchainStrategy.NATIVE

    @property
    def components(self) -> list[str]:
        return self.target_triple.split("-")

    @property
    def arch(self) -> str:
        return self.components[0]

    @property
    def vendor(self) -> str:
        return self.components[1] if len(self.components) > 1 else ""

    @property
    def os(self) -> str:
        return self.components[2] if len(self.components) > 2 else ""

    @property
    def abi(self) -> str:
        return self.components[3] if len(self.components) > 3 else ""

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def executable_suffix(self) -> str:
        """File suffix the compiler appends to executables for this target."""
        return ".exe" if self.is_windows else ""


def is_well_formed_triple(triple: str) -> bool:
    """Return True if *triple* looks like ``arch-vendor-os[-abi]``."""
    return bool(TRIPLE_PATTERN.match(triple))
