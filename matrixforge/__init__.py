"""matrixforge: tag-triggered matrix builds and releases.

For a pushed ``v<major>.<minor>.<patch>`` tag, matrixforge tests and
compiles a binary for every registered target triple in parallel,
packages each one as ``<binary>-<triple>.tar.gz`` and publishes whatever
succeeded as a single release.
"""

__version__ = "0.1.0"
__description__ = "Tag-triggered matrix builds and releases for compiled binaries"

from matrixforge.core.orchestrator import Orchestrator
from matrixforge.core.registry import DEFAULT_TARGETS, TargetRegistry

__all__ = ["Orchestrator", "TargetRegistry", "DEFAULT_TARGETS", "__version__"]
