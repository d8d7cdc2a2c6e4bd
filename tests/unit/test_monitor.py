"""Tests for the run projection and the Rich summary renderer."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel

from matrixforge.core.run_ledger import RunLedger
from matrixforge.models.jobs import JobOutcome, JobState, RunOutcome, RunSummary
from matrixforge.models.ledger import RUN_SCOPE, LedgerEntry
from matrixforge.models.targets import ToolchainStrategy
from matrixforge.monitor.projection import RunProjection
from matrixforge.monitor.renderer import SummaryRenderer


def _record(ledger: RunLedger, triple: str, *transitions: str, detail: str = "") -> None:
    for transition in transitions:
        ledger.append(
            LedgerEntry(
                run_id="run-1",
                tag="v1.2.3",
                target_triple=triple,
                state_transition=transition,
                detail=detail if transition.endswith(("succeeded", "failed")) else "",
            )
        )


def _summary(outcome: RunOutcome = RunOutcome.DEGRADED) -> RunSummary:
    return RunSummary(
        run_id="run-1",
        tag="v1.2.3",
        outcomes=[
            JobOutcome(
                target_triple="x86_64-pc-windows-msvc",
                host_os="windows-latest",
                toolchain_strategy=ToolchainStrategy.NATIVE,
                state=JobState.FAILED,
                error_kind="test_failure",
                error_message="[bold]3 tests failed[/bold]",
            ),
        ],
        outcome=outcome,
    )


class TestRunProjection:
    def test_latest_state_per_target(self, ledger: RunLedger):
        _record(ledger, "x86_64-apple-darwin", "queued->testing", "testing->building")
        _record(ledger, "x86_64-pc-windows-msvc", "queued->testing", "testing->failed",
                detail="test_failure: boom")
        snapshot = RunProjection(ledger).snapshot("run-1")
        states = {t.target_triple: t.state for t in snapshot.targets}
        assert states == {
            "x86_64-apple-darwin": JobState.BUILDING,
            "x86_64-pc-windows-msvc": JobState.FAILED,
        }
        assert snapshot.tag == "v1.2.3"
        assert snapshot.failed_count == 1
        assert snapshot.chain_valid

    def test_unknown_run(self, ledger: RunLedger):
        snapshot = RunProjection(ledger).snapshot("missing")
        assert snapshot.targets == []
        assert snapshot.outcome is None

    def test_queued_target_listed(self, ledger: RunLedger):
        _record(ledger, "x86_64-unknown-linux-gnu", "created->queued")
        snapshot = RunProjection(ledger).snapshot("run-1")
        assert [(t.target_triple, t.state) for t in snapshot.targets] == [
            ("x86_64-unknown-linux-gnu", JobState.QUEUED),
        ]

    def test_run_outcome(self, ledger: RunLedger):
        _record(ledger, "x86_64-apple-darwin", "created->queued", "queued->testing",
                "testing->failed", detail="test_failure: boom")
        _record(ledger, RUN_SCOPE, "running->failed", detail="no artifacts")
        snapshot = RunProjection(ledger).snapshot("run-1")
        assert [t.target_triple for t in snapshot.targets] == ["x86_64-apple-darwin"]
        assert snapshot.outcome == RunOutcome.FAILED
        assert snapshot.outcome_detail == "no artifacts"


class TestSummaryRenderer:
    def test_render_summary_returns_panel(self):
        assert isinstance(SummaryRenderer().render_summary(_summary()), Panel)

    def test_error_text_is_not_markup(self):
        console = Console(record=True, width=160)
        SummaryRenderer(console=console).print_summary(_summary())
        text = console.export_text()
        assert "[bold]3 tests failed[/bold]" in text
        assert "degraded" in text

    def test_render_snapshot(self, ledger: RunLedger):
        _record(ledger, "x86_64-apple-darwin", "queued->testing", "testing->building",
                "building->packaging", "packaging->succeeded",
                detail="cgf-x86_64-apple-darwin.tar.gz")
        console = Console(record=True, width=160)
        SummaryRenderer(console=console).print_snapshot(RunProjection(ledger).snapshot("run-1"))
        text = console.export_text()
        assert "SUCCEEDED" in text
        assert "cgf-x86_64-apple-darwin.tar.gz" in text
        assert "valid" in text

    def test_render_snapshot_outcome(self, ledger: RunLedger):
        _record(ledger, "x86_64-apple-darwin", "created->queued")
        _record(ledger, RUN_SCOPE, "running->cancelled", detail="cancelled")
        console = Console(record=True, width=160)
        SummaryRenderer(console=console).print_snapshot(RunProjection(ledger).snapshot("run-1"))
        text = console.export_text()
        assert "QUEUED" in text
        assert "Outcome: cancelled" in text
