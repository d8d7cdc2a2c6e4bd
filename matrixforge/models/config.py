"""Pipeline and run configuration models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from matrixforge.models.targets import TargetSpec


class PipelineConfig(BaseModel):
    """Project-level configuration for matrix release runs."""

    model_config = ConfigDict(frozen=True)

    binary_name: str = "cgf"
    default_toolchain: str = "stable"
    toolchain_profile: str = "minimal"
    source_path: Path = Path(".")
    workspace_path: Path = Path(".matrixforge/work")
    ledger_db_path: Path = Path(".matrixforge/ledger.db")
    max_workers: int | None = None  # None -> one worker per target
    keep_checkouts: bool = False  # leave per-job source trees for inspection

    @property
    def checkout_dir(self) -> Path:
        return self.workspace_path / "src"

    @property
    def dist_dir(self) -> Path:
        return self.workspace_path / "dist"


class RunConfig(BaseModel):
    """Per-run configuration, created when a release tag is observed."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"mf-{uuid.uuid4().hex[:12]}")
    tag: str
    pipeline_config: PipelineConfig = PipelineConfig()
    targets: list[TargetSpec] = []
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
