"""Append-only, hash-chained run ledger backed by SQLite.

The ledger is the record of every job transition in every run.  Run
summaries rendered after the fact are projections of it.

Design:
- Append-only: only ``append()`` writes; no update, no delete.
- Hash-chained per run: each entry includes SHA-256 of the previous entry.
- WAL journal mode for concurrent readers.
- Appends are serialized with a lock since jobs transition in parallel.
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

from matrixforge.core.hasher import compute_entry_hash
from matrixforge.models.ledger import LedgerEntry

_CREATE_LEDGER = """
CREATE TABLE IF NOT EXISTS run_ledger (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id            TEXT NOT NULL UNIQUE,
    run_id              TEXT NOT NULL,
    tag                 TEXT NOT NULL,
    target_triple       TEXT NOT NULL,
    state_transition    TEXT NOT NULL,
    detail              TEXT NOT NULL DEFAULT '',
    timestamp_utc       TEXT NOT NULL,
    previous_entry_hash TEXT NOT NULL DEFAULT '',
    entry_hash          TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_RUN = """
CREATE INDEX IF NOT EXISTS idx_run_id ON run_ledger(run_id, id);
"""

_COLUMNS = (
    "entry_id, run_id, tag, target_triple, state_transition, detail, "
    "timestamp_utc, previous_entry_hash, entry_hash"
)


class LedgerIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class RunLedger:
    """Append-only, hash-chained run ledger.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_LEDGER)
            conn.execute(_CREATE_IDX_RUN)
            conn.commit()

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Append an entry, computing its hash chain link.

        Returns the sealed entry with ``previous_entry_hash`` and
        ``entry_hash`` set.
        """
        with self._lock:
            previous_hash = self._get_latest_hash(entry.run_id)

            entry_dict = entry.model_dump(mode="json")
            entry_dict["previous_entry_hash"] = previous_hash
            entry_dict["entry_hash"] = ""
            entry_hash = compute_entry_hash(entry_dict)

            sealed = entry.model_copy(
                update={
                    "previous_entry_hash": previous_hash,
                    "entry_hash": entry_hash,
                }
            )
            self._insert(sealed)
        return sealed

    def _insert(self, entry: LedgerEntry) -> None:
        row = entry.model_dump(mode="json")
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO run_ledger ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    row["entry_id"],
                    row["run_id"],
                    row["tag"],
                    row["target_triple"],
                    row["state_transition"],
                    row["detail"],
                    row["timestamp_utc"],
                    row["previous_entry_hash"],
                    row["entry_hash"],
                ),
            )
            conn.commit()

    def _get_latest_hash(self, run_id: str) -> str:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM run_ledger WHERE run_id = ? ORDER BY id DESC LIMIT 1",
                (run_id,),
            ).fetchone()
        return row[0] if row else ""

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def get_run_entries(self, run_id: str) -> list[LedgerEntry]:
        """Return all ledger entries for a run, ordered chronologically."""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM run_ledger WHERE run_id = ? ORDER BY id ASC",
                (run_id,),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_target_history(self, run_id: str, target_triple: str) -> list[LedgerEntry]:
        """Return all transitions of one target within a run."""
        return [
            e for e in self.get_run_entries(run_id) if e.target_triple == target_triple
        ]

    def list_runs(self) -> list[tuple[str, str]]:
        """Return ``(run_id, tag)`` pairs, most recent first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT run_id, tag, MAX(id) AS last_id FROM run_ledger "
                "GROUP BY run_id, tag ORDER BY last_id DESC"
            ).fetchall()
        return [(row[0], row[1]) for row in rows]

    # ------------------------------------------------------------------
    # Chain verification
    # ------------------------------------------------------------------

    def verify_chain(self, run_id: str) -> bool:
        """Verify the hash chain integrity for a run.

        Returns True if the chain is valid, raises LedgerIntegrityError otherwise.
        """
        prev_hash = ""
        for entry in self.get_run_entries(run_id):
            if entry.previous_entry_hash != prev_hash:
                raise LedgerIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )
            expected_hash = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected_hash:
                raise LedgerIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected_hash!r}, got {entry.entry_hash!r}"
                )
            prev_hash = entry.entry_hash
        return True

    @staticmethod
    def _row_to_entry(row: tuple) -> LedgerEntry:
        (
            entry_id,
            run_id,
            tag,
            target_triple,
            state_transition,
            detail,
            timestamp_utc,
            previous_entry_hash,
            entry_hash,
        ) = row
        return LedgerEntry(
            entry_id=entry_id,
            run_id=run_id,
            tag=tag,
            target_triple=target_triple,
            state_transition=state_transition,
            detail=detail,
            timestamp_utc=timestamp_utc,
            previous_entry_hash=previous_entry_hash,
            entry_hash=entry_hash,
        )
