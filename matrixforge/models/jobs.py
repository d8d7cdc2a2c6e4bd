"""Build job state machine models and run summaries."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from matrixforge.models.artifacts import Artifact, PublishResult
from matrixforge.models.targets import TargetSpec, ToolchainStrategy


class JobState(str, Enum):
    """Lifecycle of a single BuildJob."""

    QUEUED = "queued"
    TESTING = "testing"
    BUILDING = "building"
    PACKAGING = "packaging"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Valid state transitions, enforced by JobMachine.
# Terminal states (SUCCEEDED, FAILED) have no outgoing transitions.
VALID_TRANSITIONS: dict[JobState, set[JobState]] = {
    JobState.QUEUED: {JobState.TESTING},
    JobState.TESTING: {JobState.BUILDING, JobState.FAILED},
    JobState.BUILDING: {JobState.PACKAGING, JobState.FAILED},
    JobState.PACKAGING: {JobState.SUCCEEDED, JobState.FAILED},
    JobState.SUCCEEDED: set(),  # terminal
    JobState.FAILED: set(),  # terminal
}

TERMINAL_STATES: frozenset[JobState] = frozenset(
    {JobState.SUCCEEDED, JobState.FAILED}
)


class BuildJob(BaseModel):
    """One TargetSpec bound to the tagged revision of a run.

    The job's current state lives in the JobMachine; this model only
    carries identity.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str = Field(default_factory=lambda: f"job-{uuid.uuid4().hex[:8]}")
    run_id: str
    tag: str
    target: TargetSpec

    @property
    def target_triple(self) -> str:
        return self.target.target_triple


class JobOutcome(BaseModel):
    """What survives of a BuildJob once it reaches a terminal state."""

    model_config = ConfigDict(frozen=True)

    target_triple: str
    host_os: str
    toolchain_strategy: ToolchainStrategy
    state: JobState
    error_kind: str | None = None
    error_message: str | None = None
    artifact: Artifact | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state == JobState.SUCCEEDED


class RunOutcome(str, Enum):
    """Overall verdict of a matrix release run."""

    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RunSummary(BaseModel):
    """Per-target outcomes plus the publish result of one run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    tag: str
    outcomes: list[JobOutcome]
    publish: PublishResult | None = None
    publish_error: str | None = None
    outcome: RunOutcome
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> list[JobOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> list[JobOutcome]:
        return [o for o in self.outcomes if o.state == JobState.FAILED]

    @property
    def exit_code(self) -> int:
        """0 for success and degraded success, 1 otherwise."""
        return 0 if self.outcome in (RunOutcome.SUCCESS, RunOutcome.DEGRADED) else 1
