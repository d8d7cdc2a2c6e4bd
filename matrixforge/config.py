"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and MATRIXFORGE_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProdConfig(BaseSettings):
    """Runtime configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MATRIXFORGE_LOG_LEVEL=DEBUG
        export MATRIXFORGE_GITHUB_REPOSITORY=owner/cgf
        export MATRIXFORGE_GITHUB_TOKEN=ghp_...

    Or via .env file::

        MATRIXFORGE_MAX_CONCURRENT_JOBS=2
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MATRIXFORGE_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Storage paths, used when the CLI gets no --workspace / --ledger
    workspace_path: Path = Path(".matrixforge/work")
    ledger_path: Path = Path(".matrixforge/ledger.db")

    # Release hosting
    github_token: str = ""
    github_repository: str = ""  # owner/name
    github_api_url: str = "https://api.github.com"
    github_uploads_url: str = "https://uploads.github.com"
    request_timeout_seconds: float = 30.0

    # Execution
    command_timeout_seconds: float | None = None
    max_concurrent_jobs: int = 8

    @property
    def can_publish(self) -> bool:
        """Whether GitHub publishing credentials are configured."""
        return bool(self.github_token and self.github_repository)

