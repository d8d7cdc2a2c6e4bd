"""Release artifact models.

An Artifact is produced only by a job that reached ``succeeded``.  A
ReleaseRecord groups the artifacts of one tag; each target triple may be
attached at most once.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Artifact(BaseModel):
    """A packaged archive for one target triple."""

    model_config = ConfigDict(frozen=True)

    target_triple: str
    archive_path: Path
    sha256: str = ""
    size_bytes: int = 0

    @property
    def archive_name(self) -> str:
        return self.archive_path.name


class DuplicateArtifactError(ValueError):
    """Raised when a target triple is attached to a ReleaseRecord twice."""


class ReleaseRecord(BaseModel):
    """The set of artifacts destined for one tagged release."""

    tag: str
    artifacts: dict[str, Artifact] = Field(default_factory=dict)

    def attach(self, artifact: Artifact) -> None:
        if artifact.target_triple in self.artifacts:
            raise DuplicateArtifactError(
                f"Artifact for {artifact.target_triple} already attached to {self.tag}"
            )
        self.artifacts[artifact.target_triple] = artifact

    @property
    def target_triples(self) -> list[str]:
        return sorted(self.artifacts)


class PublishResult(BaseModel):
    """Outcome of attaching a ReleaseRecord to the hosting platform."""

    model_config = ConfigDict(frozen=True)

    tag: str
    release_id: str
    attached: list[str] = []  # asset names now on the release
    replaced: list[str] = []  # subset of attached that overwrote an earlier upload
    failed: dict[str, str] = {}  # asset name -> reason

    @property
    def complete(self) -> bool:
        return not self.failed
