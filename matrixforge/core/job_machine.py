"""Per-job state machine for matrix release runs.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- No transition out of a terminal state
- Every transition recorded in the run ledger, when one is attached

Jobs of a run transition concurrently, so state access is lock-guarded.
"""

from __future__ import annotations

import threading

from matrixforge.core.run_ledger import RunLedger
from matrixforge.models.jobs import TERMINAL_STATES, VALID_TRANSITIONS, BuildJob, JobState
from matrixforge.models.ledger import CREATED, LedgerEntry


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class JobMachine:
    """Tracks and validates the state of every BuildJob in a run.

    Parameters
    ----------
    ledger:
        Optional run ledger to record transitions into.
    """

    def __init__(self, ledger: RunLedger | None = None) -> None:
        self._ledger = ledger
        self._lock = threading.Lock()
        # run_id -> {target_triple -> JobState}
        self._states: dict[str, dict[str, JobState]] = {}

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def initialize_run(self, run_id: str, jobs: list[BuildJob]) -> dict[str, JobState]:
        """Put every job of a new run into QUEUED.

        With a ledger attached each job gets a ``created->queued`` entry,
        so targets that never start still show up in the run history.
        """
        with self._lock:
            states = {job.target_triple: JobState.QUEUED for job in jobs}
            self._states[run_id] = states
        if self._ledger is not None:
            for job in jobs:
                self._ledger.append(
                    LedgerEntry(
                        run_id=run_id,
                        tag=job.tag,
                        target_triple=job.target_triple,
                        state_transition=f"{CREATED}->{JobState.QUEUED.value}",
                    )
                )
        return dict(states)

    def get_state(self, run_id: str, target_triple: str) -> JobState:
        with self._lock:
            return self._states[run_id][target_triple]

    def get_all_states(self, run_id: str) -> dict[str, JobState]:
        """Return a snapshot of all job states for a run."""
        with self._lock:
            return dict(self._states.get(run_id, {}))

    def all_terminal(self, run_id: str) -> bool:
        with self._lock:
            return all(s in TERMINAL_STATES for s in self._states[run_id].values())

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        job: BuildJob,
        target_state: JobState,
        *,
        detail: str = "",
    ) -> LedgerEntry:
        """Move *job* to *target_state*, recording the transition.

        Raises InvalidTransitionError if the move is not in
        VALID_TRANSITIONS (which also forbids leaving a terminal state).
        """
        with self._lock:
            run_states = self._states.get(job.run_id)
            if run_states is None or job.target_triple not in run_states:
                raise InvalidTransitionError(
                    f"Job {job.target_triple} is not part of run {job.run_id}"
                )
            current = run_states[job.target_triple]
            allowed = VALID_TRANSITIONS.get(current, set())
            if target_state not in allowed:
                raise InvalidTransitionError(
                    f"Cannot transition {job.target_triple} from {current.value} "
                    f"to {target_state.value}. Allowed: {sorted(s.value for s in allowed)}"
                )
            run_states[job.target_triple] = target_state

        entry = LedgerEntry(
            run_id=job.run_id,
            tag=job.tag,
            target_triple=job.target_triple,
            state_transition=f"{current.value}->{target_state.value}",
            detail=detail,
        )
        if self._ledger is not None:
            return self._ledger.append(entry)
        return entry

    def get_available_transitions(self, run_id: str, target_triple: str) -> set[JobState]:
        """Return the set of valid target states for a job."""
        return VALID_TRANSITIONS.get(self.get_state(run_id, target_triple), set())
