"""Tests for the pydantic models — targets, jobs, artifacts, summaries."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from matrixforge.models.artifacts import (
    Artifact,
    DuplicateArtifactError,
    PublishResult,
    ReleaseRecord,
)
from matrixforge.models.jobs import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    JobOutcome,
    JobState,
    RunOutcome,
    RunSummary,
)
from matrixforge.models.targets import TargetSpec, ToolchainStrategy, is_well_formed_triple


class TestTargetSpec:
    def test_components(self):
        spec = TargetSpec(host_os="ubuntu-latest", target_triple="x86_64-unknown-linux-gnu")
        assert spec.arch == "x86_64"
        assert spec.vendor == "unknown"
        assert spec.os == "linux"
        assert spec.abi == "gnu"
        assert spec.toolchain_strategy == ToolchainStrategy.NATIVE

    def test_three_component_triple_has_no_abi(self):
        spec = TargetSpec(host_os="macos-latest", target_triple="x86_64-apple-darwin")
        assert spec.os == "darwin"
        assert spec.abi == ""

    def test_windows_executable_suffix(self):
        win = TargetSpec(host_os="windows-latest", target_triple="x86_64-pc-windows-msvc")
        mac = TargetSpec(host_os="macos-latest", target_triple="x86_64-apple-darwin")
        assert win.is_windows
        assert win.executable_suffix == ".exe"
        assert mac.executable_suffix == ""

    def test_frozen(self):
        spec = TargetSpec(host_os="ubuntu-latest", target_triple="x86_64-unknown-linux-gnu")
        with pytest.raises(ValidationError):
            spec.target_triple = "aarch64-unknown-linux-gnu"  # type: ignore[misc]

    @pytest.mark.parametrize(
        "triple",
        ["x86_64-apple-darwin", "x86_64-pc-windows-msvc", "armv7-unknown-linux-gnueabihf"],
    )
    def test_well_formed(self, triple):
        assert is_well_formed_triple(triple)

    @pytest.mark.parametrize(
        "triple", ["", "x86_64", "x86_64-linux", "X86_64-apple-darwin", "a-b-c-d-e", "x86 64-a-b"]
    )
    def test_malformed(self, triple):
        assert not is_well_formed_triple(triple)


class TestJobStates:
    def test_terminal_states_have_no_exits(self):
        for state in TERMINAL_STATES:
            assert VALID_TRANSITIONS[state] == set()

    def test_failed_reachable_only_from_active_states(self):
        sources = {s for s, targets in VALID_TRANSITIONS.items() if JobState.FAILED in targets}
        assert sources == {JobState.TESTING, JobState.BUILDING, JobState.PACKAGING}

    def test_happy_path_is_linear(self):
        assert VALID_TRANSITIONS[JobState.QUEUED] == {JobState.TESTING}
        assert JobState.BUILDING in VALID_TRANSITIONS[JobState.TESTING]
        assert JobState.PACKAGING in VALID_TRANSITIONS[JobState.BUILDING]
        assert JobState.SUCCEEDED in VALID_TRANSITIONS[JobState.PACKAGING]


class TestReleaseRecord:
    def _artifact(self, triple: str) -> Artifact:
        return Artifact(target_triple=triple, archive_path=Path(f"/dist/cgf-{triple}.tar.gz"))

    def test_attach(self):
        record = ReleaseRecord(tag="v1.2.3")
        record.attach(self._artifact("x86_64-apple-darwin"))
        record.attach(self._artifact("x86_64-unknown-linux-gnu"))
        assert record.target_triples == ["x86_64-apple-darwin", "x86_64-unknown-linux-gnu"]

    def test_duplicate_triple_rejected(self):
        record = ReleaseRecord(tag="v1.2.3")
        record.attach(self._artifact("x86_64-apple-darwin"))
        with pytest.raises(DuplicateArtifactError):
            record.attach(self._artifact("x86_64-apple-darwin"))

    def test_archive_name(self):
        artifact = self._artifact("x86_64-unknown-linux-gnu")
        assert artifact.archive_name == "cgf-x86_64-unknown-linux-gnu.tar.gz"


class TestRunSummary:
    def _outcome(self, state: JobState) -> JobOutcome:
        return JobOutcome(
            target_triple="x86_64-apple-darwin",
            host_os="macos-latest",
            toolchain_strategy=ToolchainStrategy.NATIVE,
            state=state,
        )

    @pytest.mark.parametrize(
        "outcome,code",
        [
            (RunOutcome.SUCCESS, 0),
            (RunOutcome.DEGRADED, 0),
            (RunOutcome.FAILED, 1),
            (RunOutcome.CANCELLED, 1),
        ],
    )
    def test_exit_codes(self, outcome, code):
        summary = RunSummary(run_id="r", tag="v1.0.0", outcomes=[], outcome=outcome)
        assert summary.exit_code == code

    def test_partitions_outcomes(self):
        summary = RunSummary(
            run_id="r",
            tag="v1.0.0",
            outcomes=[self._outcome(JobState.SUCCEEDED), self._outcome(JobState.FAILED)],
            outcome=RunOutcome.DEGRADED,
        )
        assert len(summary.succeeded) == 1
        assert len(summary.failed) == 1

    def test_publish_result_complete(self):
        assert PublishResult(tag="v1.0.0", release_id="1", attached=["a"]).complete
        assert not PublishResult(tag="v1.0.0", release_id="1", failed={"b": "500"}).complete
