"""Run ledger entry model — one entry per job state transition.

Entries are append-only and hash-chained per run: each entry carries the
hash of the previous entry of the same run.  Besides job transitions a
run records one ``RUN_SCOPE`` entry holding its final outcome.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

# target_triple of entries that describe the whole run rather than one job.
RUN_SCOPE = "*"
# Pseudo-state a job leaves when it is queued at run start.
CREATED = "created"


class LedgerEntry(BaseModel):
    """A single job transition recorded in the run ledger."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: str
    tag: str
    target_triple: str
    state_transition: str  # "from_state->to_state", e.g. "queued->testing"
    detail: str = ""  # error message or artifact name
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    previous_entry_hash: str = ""
    entry_hash: str = ""  # computed on append, seals this entry

    @property
    def to_state(self) -> str:
        return self.state_transition.split("->", 1)[-1]

    @property
    def is_run_scope(self) -> bool:
        return self.target_triple == RUN_SCOPE
