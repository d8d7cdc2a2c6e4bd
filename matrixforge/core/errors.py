"""Error taxonomy for matrix release runs.

Three blast radii:

- ``ConfigurationError`` — fatal before any job starts.
- ``JobError`` and subclasses — fatal to one job only.  Caught at the job
  boundary by the orchestrator; siblings keep running.
- ``PublishError`` — fatal to the run when no artifact could be attached.

Nothing in matrixforge retries automatically.  Recovery is a manual
re-trigger (re-push the tag or re-run the job).
"""

from __future__ import annotations


class MatrixforgeError(RuntimeError):
    """Base class for all matrixforge errors."""


class ConfigurationError(MatrixforgeError):
    """Raised when the target registry or pipeline config is invalid."""


class JobError(MatrixforgeError):
    """A job-fatal error, always tied to the target triple it occurred on."""

    kind: str = "job_error"

    def __init__(self, target_triple: str, message: str) -> None:
        super().__init__(f"[{target_triple}] {message}")
        self.target_triple = target_triple
        self.message = message


class CheckoutError(JobError):
    """The source tree for the tagged revision could not be produced."""

    kind = "checkout_error"


class ResolutionError(JobError):
    """No usable toolchain could be obtained for the target."""

    kind = "resolution_error"


class BuildError(JobError):
    """Base for test and compile failures."""

    kind = "build_error"


class TestFailure(BuildError):
    """The project's test suite failed."""

    __test__ = False  # not a pytest test class
    kind = "test_failure"


class CompileFailure(BuildError):
    """The release compile failed or produced no binary."""

    kind = "compile_failure"


class PackagingError(JobError):
    """The compiled binary could not be packaged into an archive."""

    kind = "packaging_error"


class PublishError(MatrixforgeError):
    """The release could not be created or no artifact could be attached."""
