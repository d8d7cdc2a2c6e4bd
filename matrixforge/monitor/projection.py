"""RunProjection — read-only view of a past run, rebuilt from the RunLedger.

The projection never keeps state of its own; every ``snapshot()`` call
re-reads the ledger.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from matrixforge.core.run_ledger import LedgerIntegrityError, RunLedger
from matrixforge.models.jobs import JobState, RunOutcome


class TargetStatus(BaseModel):
    """Latest known state of one target in a run."""

    model_config = ConfigDict(frozen=True)

    target_triple: str
    state: JobState = JobState.QUEUED
    entered_at: datetime | None = None
    detail: str = ""


class RunSnapshot(BaseModel):
    """Point-in-time view of a run, derived from ledger entries."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    tag: str = ""
    targets: list[TargetStatus] = []
    chain_valid: bool = True
    outcome: RunOutcome | None = None  # None while the run is unfinished
    outcome_detail: str = ""

    @property
    def succeeded_count(self) -> int:
        return sum(1 for t in self.targets if t.state == JobState.SUCCEEDED)

    @property
    def failed_count(self) -> int:
        return sum(1 for t in self.targets if t.state == JobState.FAILED)


class RunProjection:
    """Builds RunSnapshots from a RunLedger."""

    def __init__(self, ledger: RunLedger) -> None:
        self._ledger = ledger

    def snapshot(self, run_id: str) -> RunSnapshot:
        entries = self._ledger.get_run_entries(run_id)
        statuses: dict[str, TargetStatus] = {}
        tag = ""
        outcome: RunOutcome | None = None
        outcome_detail = ""
        for entry in entries:
            tag = entry.tag
            if entry.is_run_scope:
                outcome = RunOutcome(entry.to_state)
                outcome_detail = entry.detail
                continue
            statuses[entry.target_triple] = TargetStatus(
                target_triple=entry.target_triple,
                state=JobState(entry.to_state),
                entered_at=entry.timestamp_utc,
                detail=entry.detail,
            )

        try:
            chain_valid = self._ledger.verify_chain(run_id)
        except LedgerIntegrityError:
            chain_valid = False

        return RunSnapshot(
            run_id=run_id,
            tag=tag,
            targets=list(statuses.values()),
            chain_valid=chain_valid,
            outcome=outcome,
            outcome_detail=outcome_detail,
        )
