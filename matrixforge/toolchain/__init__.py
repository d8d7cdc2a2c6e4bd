"""Toolchain resolution for native and cross targets."""

from matrixforge.toolchain.installers import (
    CargoToolInstaller,
    InstallFailed,
    RustupInstaller,
    ToolchainInstaller,
)
from matrixforge.toolchain.resolver import (
    CrossToolchainResolver,
    NativeToolchainResolver,
    ResolverSet,
    ToolchainHandle,
    ToolchainResolver,
    host_system_for,
)

__all__ = [
    "CargoToolInstaller",
    "InstallFailed",
    "RustupInstaller",
    "ToolchainInstaller",
    "CrossToolchainResolver",
    "NativeToolchainResolver",
    "ResolverSet",
    "ToolchainHandle",
    "ToolchainResolver",
    "host_system_for",
]
