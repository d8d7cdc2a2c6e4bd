"""Tests for the RunLedger — append-only, hash-chained, per-run queries."""

from __future__ import annotations

import sqlite3

import pytest

from matrixforge.core.run_ledger import LedgerIntegrityError, RunLedger
from matrixforge.models.ledger import LedgerEntry


def _entry(run_id: str, triple: str, transition: str, tag: str = "v1.2.3") -> LedgerEntry:
    return LedgerEntry(
        run_id=run_id, tag=tag, target_triple=triple, state_transition=transition
    )


class TestRunLedger:
    def test_append_seals_entry(self, ledger: RunLedger):
        sealed = ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing"))
        assert sealed.entry_hash
        assert sealed.previous_entry_hash == ""

    def test_chain_links(self, ledger: RunLedger):
        first = ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing"))
        second = ledger.append(_entry("run-1", "x86_64-apple-darwin", "testing->building"))
        assert second.previous_entry_hash == first.entry_hash
        assert ledger.verify_chain("run-1")

    def test_chains_are_per_run(self, ledger: RunLedger):
        ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing"))
        other = ledger.append(_entry("run-2", "x86_64-apple-darwin", "queued->testing"))
        assert other.previous_entry_hash == ""

    def test_entries_round_trip(self, ledger: RunLedger):
        ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing"))
        ledger.append(_entry("run-1", "x86_64-unknown-linux-gnu", "queued->testing"))
        entries = ledger.get_run_entries("run-1")
        assert [e.target_triple for e in entries] == [
            "x86_64-apple-darwin",
            "x86_64-unknown-linux-gnu",
        ]
        assert entries[0].to_state == "testing"

    def test_target_history(self, ledger: RunLedger):
        ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing"))
        ledger.append(_entry("run-1", "x86_64-unknown-linux-gnu", "queued->testing"))
        history = ledger.get_target_history("run-1", "x86_64-apple-darwin")
        assert len(history) == 1

    def test_list_runs_most_recent_first(self, ledger: RunLedger):
        ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing", tag="v1.0.0"))
        ledger.append(_entry("run-2", "x86_64-apple-darwin", "queued->testing", tag="v1.0.1"))
        assert ledger.list_runs() == [("run-2", "v1.0.1"), ("run-1", "v1.0.0")]

    def test_tampering_detected(self, ledger: RunLedger, tmp_dir):
        ledger.append(_entry("run-1", "x86_64-apple-darwin", "queued->testing"))
        ledger.append(_entry("run-1", "x86_64-apple-darwin", "testing->failed"))
        with sqlite3.connect(str(tmp_dir / "test_ledger.db")) as conn:
            conn.execute(
                "UPDATE run_ledger SET state_transition = 'testing->building' "
                "WHERE state_transition = 'testing->failed'"
            )
            conn.commit()
        with pytest.raises(LedgerIntegrityError):
            ledger.verify_chain("run-1")

    def test_empty_run_verifies(self, ledger: RunLedger):
        assert ledger.verify_chain("missing")
        assert ledger.get_run_entries("missing") == []
