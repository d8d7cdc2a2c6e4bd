"""End-to-end integration tests — a tag push through build, package and publish.

These tests exercise the Orchestrator, JobMachine, RunLedger, ResolverSet,
BuildRunner, Packager and ReleasePublisher working together against a
scripted command executor and an in-memory release host.
"""

from __future__ import annotations

import io
import stat
import tarfile

from matrixforge.core.hasher import sha256_hex
from matrixforge.models.jobs import JobState, RunOutcome
from matrixforge.monitor.projection import RunProjection

TRIPLES = ["x86_64-apple-darwin", "x86_64-pc-windows-msvc", "x86_64-unknown-linux-gnu"]


class TestFullRelease:
    """Tag push -> per-target jobs -> one release with one asset per success."""

    def test_published_archives_contain_executables(self, make_orchestrator, host):
        summary = make_orchestrator().handle_push("refs/tags/v1.2.3")
        assert summary.outcome == RunOutcome.SUCCESS

        assets = host.assets[host.releases["v1.2.3"]]
        for triple in TRIPLES:
            data = assets[f"cgf-{triple}.tar.gz"]
            with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
                (member,) = tar.getmembers()
                expected = "cgf.exe" if "windows" in triple else "cgf"
                assert member.name == expected
                assert member.mode & stat.S_IXUSR
                assert triple.encode() in tar.extractfile(member).read()

    def test_artifact_checksums_match_published_bytes(self, make_orchestrator, host):
        summary = make_orchestrator().run("v1.2.3")
        assets = host.assets[host.releases["v1.2.3"]]
        for outcome in summary.outcomes:
            assert sha256_hex(assets[outcome.artifact.archive_name]) == outcome.artifact.sha256

    def test_rerun_of_same_tag_is_idempotent(self, make_orchestrator, host):
        orchestrator = make_orchestrator()
        first = orchestrator.run("v1.2.3")
        second = orchestrator.run("v1.2.3")

        assert first.run_id != second.run_id
        assert len(host.releases) == 1
        assert len(host.assets[host.releases["v1.2.3"]]) == 3
        assert len(second.publish.replaced) == 3
        assert len(orchestrator.ledger.list_runs()) == 2

    def test_partial_matrix_publishes_survivors(self, make_orchestrator, executor, host):
        executor.fail(
            lambda cmd, args, cwd: cmd == "rustup" and "x86_64-pc-windows-msvc" in args,
            output="error: component download failed",
        )
        orchestrator = make_orchestrator()
        summary = orchestrator.run("v1.2.3", run_id="run-partial")

        assert summary.outcome == RunOutcome.DEGRADED
        assert sorted(host.assets[host.releases["v1.2.3"]]) == [
            "cgf-x86_64-apple-darwin.tar.gz",
            "cgf-x86_64-unknown-linux-gnu.tar.gz",
        ]

        snapshot = RunProjection(orchestrator.ledger).snapshot("run-partial")
        states = {t.target_triple: t.state for t in snapshot.targets}
        assert states == {
            "x86_64-apple-darwin": JobState.SUCCEEDED,
            "x86_64-pc-windows-msvc": JobState.FAILED,
            "x86_64-unknown-linux-gnu": JobState.SUCCEEDED,
        }
        assert snapshot.chain_valid
        windows = next(t for t in snapshot.targets if t.target_triple == "x86_64-pc-windows-msvc")
        assert windows.detail.startswith("resolution_error")

    def test_failing_test_suite_never_reports_compile_or_packaging(
        self, make_orchestrator, executor, host
    ):
        executor.fail(lambda cmd, args, cwd: "test" in args, output="test result: FAILED")
        summary = make_orchestrator().run("v1.2.3")

        assert summary.outcome == RunOutcome.FAILED
        assert {o.error_kind for o in summary.outcomes} == {"test_failure"}
        assert executor.calls_to("cargo", "build") == []
        assert host.releases == {}

    def test_every_job_reaches_a_terminal_state(self, make_orchestrator, executor):
        executor.fail(lambda cmd, args, cwd: "build" in args and "x86_64-apple-darwin" in args)
        orchestrator = make_orchestrator()
        summary = orchestrator.run("v1.2.3", run_id="run-terminal")
        assert orchestrator.job_machine.all_terminal("run-terminal")
        assert len(summary.outcomes) == len(TRIPLES)
