"""Release publishing and alternate distribution channels."""

from matrixforge.release.container import ContainerImageBuilder
from matrixforge.release.hosting import (
    GitHubReleaseHost,
    InMemoryReleaseHost,
    ReleaseHost,
    ReleaseHostError,
)
from matrixforge.release.publisher import ReleasePublisher

__all__ = [
    "ContainerImageBuilder",
    "GitHubReleaseHost",
    "InMemoryReleaseHost",
    "ReleaseHost",
    "ReleaseHostError",
    "ReleasePublisher",
]
