"""Matrix release orchestrator — the central coordinator of a release run.

For a pushed release tag the Orchestrator creates one BuildJob per
registry entry, runs every job on its own worker, and once all jobs have
reached a terminal state hands the succeeded jobs' artifacts to the
Release Publisher.

Per job:

    queued -> testing    checkout the tag, run the test suite
           -> building   resolve the toolchain, compile the release binary
           -> packaging  archive the binary
           -> succeeded

Any ``JobError`` is caught at the job boundary and moves only that job to
``failed``; sibling jobs keep running and the run degrades rather than
aborts.  Job checkouts are removed once the job ends, and the run's final
outcome is recorded in the ledger next to the job transitions.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from pathlib import Path

from matrixforge.backends.checkout import (
    CheckoutFailed,
    DirectoryCheckout,
    GitWorktreeCheckout,
    SourceCheckout,
)
from matrixforge.backends.commands import CommandExecutor, SubprocessExecutor
from matrixforge.build.packager import Packager
from matrixforge.build.runner import BuildRunner
from matrixforge.config import ProdConfig
from matrixforge.core.errors import CheckoutError, ConfigurationError, JobError, PublishError
from matrixforge.core.job_machine import JobMachine
from matrixforge.core.registry import TargetRegistry
from matrixforge.core.run_ledger import RunLedger
from matrixforge.core.trigger import is_release_tag, release_tag_from_ref
from matrixforge.models.config import PipelineConfig, RunConfig
from matrixforge.models.jobs import (
    BuildJob,
    JobOutcome,
    JobState,
    RunOutcome,
    RunSummary,
)
from matrixforge.models.ledger import RUN_SCOPE, LedgerEntry
from matrixforge.release.hosting import ReleaseHost
from matrixforge.release.publisher import ReleasePublisher
from matrixforge.toolchain.resolver import ResolverSet, ToolchainResolver

logger = logging.getLogger(__name__)


class Orchestrator:
    """Drives one BuildJob per target, in parallel, then publishes.

    Parameters
    ----------
    registry:
        The validated build matrix.
    resolvers:
        Toolchain resolution (usually a ``ResolverSet``).
    runner / packager / publisher / checkout:
        Per-job collaborators.
    config:
        Pipeline configuration (workspace layout, worker cap).
    ledger:
        Optional run ledger recording every job transition.
    max_workers:
        Upper bound on concurrent jobs. Defaults to one worker per target.
    """

    def __init__(
        self,
        registry: TargetRegistry,
        resolvers: ToolchainResolver,
        runner: BuildRunner,
        packager: Packager,
        publisher: ReleasePublisher,
        checkout: SourceCheckout,
        *,
        config: PipelineConfig | None = None,
        ledger: RunLedger | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.registry = registry
        self.resolvers = resolvers
        self.runner = runner
        self.packager = packager
        self.publisher = publisher
        self.checkout = checkout
        self.config = config or PipelineConfig()
        self.ledger = ledger
        self.job_machine = JobMachine(ledger)
        self.max_workers = max_workers or self.config.max_workers
        self._cancelled = threading.Event()

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        *,
        host: ReleaseHost,
        prod_config: ProdConfig | None = None,
        registry: TargetRegistry | None = None,
        executor: CommandExecutor | None = None,
    ) -> Orchestrator:
        """Wire the default subprocess-backed collaborators."""
        prod_config = prod_config or ProdConfig()
        executor = executor or SubprocessExecutor(
            timeout=prod_config.command_timeout_seconds
        )
        source = Path(config.source_path)
        checkout: SourceCheckout
        if (source / ".git").exists():
            checkout = GitWorktreeCheckout(source, executor)
        else:
            checkout = DirectoryCheckout(source)

        return cls(
            registry=registry or TargetRegistry(),
            resolvers=ResolverSet.default(
                executor,
                toolchain=config.default_toolchain,
                profile=config.toolchain_profile,
            ),
            runner=BuildRunner(
                executor,
                binary_name=config.binary_name,
                default_toolchain=config.default_toolchain,
            ),
            packager=Packager(config.dist_dir, binary_name=config.binary_name),
            publisher=ReleasePublisher(host),
            checkout=checkout,
            config=config,
            ledger=RunLedger(config.ledger_db_path),
            max_workers=config.max_workers or prod_config.max_concurrent_jobs,
        )

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def handle_push(self, ref: str) -> RunSummary | None:
        """Start a run for a release tag push; ignore every other ref."""
        tag = release_tag_from_ref(ref)
        if tag is None:
            logger.info("Ref %s is not a release tag; no run started", ref)
            return None
        return self.run(tag)

    def cancel(self) -> None:
        """Abort the run externally.

        Jobs that have not started stay queued and are skipped; jobs
        already running finish.  Nothing is published.
        """
        logger.warning("Run cancellation requested")
        self._cancelled.set()

    def run(self, tag: str, *, run_id: str | None = None) -> RunSummary:
        """Execute the full matrix for *tag* and publish the result."""
        if not is_release_tag(tag):
            raise ConfigurationError(f"{tag!r} is not a release tag (v<major>.<minor>.<patch>)")

        self._cancelled.clear()
        started_at = datetime.now(timezone.utc)
        run_config = RunConfig(
            run_id=run_id or f"mf-{started_at.strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:4]}",
            tag=tag,
            pipeline_config=self.config,
            targets=list(self.registry.list_targets()),
        )
        jobs = [
            BuildJob(run_id=run_config.run_id, tag=tag, target=spec)
            for spec in run_config.targets
        ]
        try:
            self.job_machine.initialize_run(run_config.run_id, jobs)
        except sqlite3.Error:
            logger.exception("Ledger write failed queueing run %s", run_config.run_id)
        logger.info(
            "Run %s started for %s with %d jobs", run_config.run_id, tag, len(jobs)
        )

        outcomes = self._fan_out(jobs)
        self._remove_run_dir(run_config.run_id)
        summary = self._conclude(run_config, outcomes, started_at)
        self._record_outcome(summary)
        logger.info(
            "Run %s finished: %s (%d/%d targets succeeded)",
            summary.run_id,
            summary.outcome.value,
            len(summary.succeeded),
            len(summary.outcomes),
        )
        return summary

    def _fan_out(self, jobs: list[BuildJob]) -> list[JobOutcome]:
        workers = min(len(jobs), self.max_workers or len(jobs))
        by_triple: dict[str, JobOutcome] = {}
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="matrixforge-job"
        ) as pool:
            futures = {pool.submit(self._run_job, job): job for job in jobs}
            for future in as_completed(futures):
                job = futures[future]
                by_triple[job.target_triple] = future.result()
        # Registry order, not completion order.
        return [by_triple[job.target_triple] for job in jobs]

    def _conclude(
        self,
        run_config: RunConfig,
        outcomes: list[JobOutcome],
        started_at: datetime,
    ) -> RunSummary:
        artifacts = [o.artifact for o in outcomes if o.succeeded and o.artifact]
        publish = None
        publish_error = None

        if self._cancelled.is_set():
            outcome = RunOutcome.CANCELLED
        elif not artifacts:
            outcome = RunOutcome.FAILED
            logger.error("Run %s produced no artifacts; nothing published", run_config.run_id)
        else:
            try:
                publish = self.publisher.publish(run_config.tag, artifacts)
            except PublishError as exc:
                logger.error("Publishing %s failed: %s", run_config.tag, exc)
                publish_error = str(exc)
                outcome = RunOutcome.FAILED
            else:
                all_ok = len(artifacts) == len(outcomes) and publish.complete
                outcome = RunOutcome.SUCCESS if all_ok else RunOutcome.DEGRADED

        return RunSummary(
            run_id=run_config.run_id,
            tag=run_config.tag,
            outcomes=outcomes,
            publish=publish,
            publish_error=publish_error,
            outcome=outcome,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )

    def _record_outcome(self, summary: RunSummary) -> None:
        """Append the run-scope ledger entry holding the final outcome."""
        if self.ledger is None:
            return
        if summary.publish is not None:
            detail = (
                f"attached {len(summary.publish.attached)}/{len(summary.outcomes)} assets"
            )
            if summary.publish.failed:
                detail += "; upload failed: " + ", ".join(sorted(summary.publish.failed))
        elif summary.publish_error:
            detail = summary.publish_error
        elif summary.outcome == RunOutcome.CANCELLED:
            detail = "cancelled"
        else:
            detail = "no artifacts"
        try:
            self.ledger.append(
                LedgerEntry(
                    run_id=summary.run_id,
                    tag=summary.tag,
                    target_triple=RUN_SCOPE,
                    state_transition=f"running->{summary.outcome.value}",
                    detail=detail,
                )
            )
        except sqlite3.Error:
            logger.exception("Ledger write failed recording outcome of %s", summary.run_id)

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------

    def _run_job(self, job: BuildJob) -> JobOutcome:
        """Run one job to a terminal state. Never raises for job failures."""
        spec = job.target
        triple = spec.target_triple
        started = time.monotonic()

        if self._cancelled.is_set():
            logger.info("Skipping %s: run cancelled", triple)
            return self._outcome(
                job,
                JobState.QUEUED,
                started,
                error_kind="cancelled",
                error_message="run cancelled before the job started",
            )

        destination = self.config.checkout_dir / job.run_id / triple
        try:
            self._transition(job, JobState.TESTING)
            source_dir = self._checkout(job, destination)
            self.runner.test(spec, source_dir)

            self._transition(job, JobState.BUILDING)
            toolchain = self.resolvers.resolve(spec)
            binary = self.runner.compile(spec, toolchain, source_dir)

            self._transition(job, JobState.PACKAGING)
            artifact = self.packager.package(binary, triple)
        except JobError as exc:
            logger.error("Job failed [%s] %s: %s", triple, exc.kind, exc.message)
            return self._fail(job, started, exc.kind, exc.message)
        except Exception as exc:
            logger.exception("Job crashed [%s]", triple)
            return self._fail(job, started, "internal_error", str(exc))
        finally:
            self._cleanup(destination)

        self._transition(job, JobState.SUCCEEDED, detail=artifact.archive_name)
        logger.info("Job succeeded [%s] -> %s", triple, artifact.archive_name)
        return self._outcome(job, JobState.SUCCEEDED, started, artifact=artifact)

    def _transition(self, job: BuildJob, state: JobState, *, detail: str = "") -> None:
        """Advance *job*; a ledger write failure is logged, never fatal.

        The in-memory state moves before the ledger append, so a broken
        ledger leaves a gap in the history but the job itself goes on.
        """
        try:
            self.job_machine.transition(job, state, detail=detail)
        except sqlite3.Error:
            logger.exception(
                "Ledger write failed for %s -> %s", job.target_triple, state.value
            )

    def _checkout(self, job: BuildJob, destination: Path) -> Path:
        try:
            return self.checkout.checkout(job.tag, destination)
        except CheckoutFailed as exc:
            raise CheckoutError(job.target_triple, str(exc)) from exc

    def _cleanup(self, destination: Path) -> None:
        if self.config.keep_checkouts or not destination.exists():
            return
        try:
            self.checkout.remove(destination)
        except OSError as exc:
            logger.warning("Could not remove checkout %s: %s", destination, exc)

    def _remove_run_dir(self, run_id: str) -> None:
        run_dir = self.config.checkout_dir / run_id
        if self.config.keep_checkouts or not run_dir.is_dir():
            return
        try:
            run_dir.rmdir()
        except OSError as exc:
            logger.warning("Could not remove checkout directory %s: %s", run_dir, exc)

    def _fail(self, job: BuildJob, started: float, kind: str, message: str) -> JobOutcome:
        available = self.job_machine.get_available_transitions(job.run_id, job.target_triple)
        if JobState.FAILED in available:
            self._transition(job, JobState.FAILED, detail=f"{kind}: {message}")
        return self._outcome(job, JobState.FAILED, started, error_kind=kind, error_message=message)

    @staticmethod
    def _outcome(
        job: BuildJob,
        state: JobState,
        started: float,
        **fields,
    ) -> JobOutcome:
        return JobOutcome(
            target_triple=job.target_triple,
            host_os=job.target.host_os,
            toolchain_strategy=job.target.toolchain_strategy,
            state=state,
            duration_seconds=round(time.monotonic() - started, 3),
            **fields,
        )

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_states(self, run_id: str) -> dict[str, JobState]:
        """Return the current state of every job in a run."""
        return self.job_machine.get_all_states(run_id)
