"""matrixforge data models — Pydantic v2, frozen wherever the value is immutable."""

from matrixforge.models.artifacts import (
    Artifact,
    DuplicateArtifactError,
    PublishResult,
    ReleaseRecord,
)
from matrixforge.models.config import PipelineConfig, RunConfig
from matrixforge.models.jobs import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    BuildJob,
    JobOutcome,
    JobState,
    RunOutcome,
    RunSummary,
)
from matrixforge.models.ledger import CREATED, RUN_SCOPE, LedgerEntry
from matrixforge.models.targets import TargetSpec, ToolchainStrategy

__all__ = [
    # targets
    "TargetSpec",
    "ToolchainStrategy",
    # jobs
    "BuildJob",
    "JobOutcome",
    "JobState",
    "RunOutcome",
    "RunSummary",
    "TERMINAL_STATES",
    "VALID_TRANSITIONS",
    # artifacts
    "Artifact",
    "DuplicateArtifactError",
    "PublishResult",
    "ReleaseRecord",
    # ledger
    "LedgerEntry",
    "CREATED",
    "RUN_SCOPE",
    # config
    "PipelineConfig",
    "RunConfig",
]
