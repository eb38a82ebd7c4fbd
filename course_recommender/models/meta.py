"""
Audit record for one CLI/pipeline stage execution.

A ``RunMetadata`` is created when a stage starts, filled in as the stage
learns what it is working on (dataset path, request, output files), and
closed with ``mark_finished()``. The record is then written to
``<run_dir>/<run_slug>.json``.

``config_snapshot`` holds the full ``AppConfig`` dump, so re-running with the
same config, dataset and ``request_snapshot`` reproduces the result.

Unlike every other model in the package, this one is mutable.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from course_recommender.utils.time_utils import elapsed_seconds, utcnow

VALID_PIPELINE_STAGES = frozenset({"recommend", "validate_data"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed"})


class RunMetadata(BaseModel):
    """Stage run record.

    Attributes:
        run_slug:         UUID4 string; also the run record's file stem.
        pipeline_stage:   ``recommend`` or ``validate_data``.
        status:           ``started`` until ``mark_finished()``.
        config_snapshot:  ``AppConfig.model_dump(mode="json")`` at start.
        request_snapshot: Generation request in wire form (recommend runs).
        dataset_path:     Dataset file or directory the stage loaded.
        output_files:     Files written by the stage.
        rows_processed:   Trainees scored, or enrollments inspected.
        error_message:    ``str(exc)`` of the failure, if any.
        duration_seconds: Wall time, set by ``mark_finished()``.
    """

    model_config = ConfigDict(frozen=False)

    run_slug: str
    pipeline_stage: str
    status: str = "started"
    config_snapshot: dict[str, Any]
    request_snapshot: Optional[dict[str, Any]] = None
    dataset_path: Optional[str] = None
    output_files: list[str] = Field(default_factory=list)
    rows_processed: int = 0
    error_message: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    @field_validator("pipeline_stage")
    @classmethod
    def validate_pipeline_stage(cls, v: str) -> str:
        if v not in VALID_PIPELINE_STAGES:
            raise ValueError(
                f"Unknown pipeline_stage '{v}'. Must be one of {sorted(VALID_PIPELINE_STAGES)}."
            )
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_RUN_STATUSES:
            raise ValueError(
                f"Unknown status '{v}'. Must be one of {sorted(VALID_RUN_STATUSES)}."
            )
        return v

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    def mark_finished(
        self,
        status: str,
        rows_processed: Optional[int] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        """Close the record with a final status and timing."""
        if status not in VALID_RUN_STATUSES:
            raise ValueError(f"Unknown status '{status}'.")
        self.status = status
        if rows_processed is not None:
            self.rows_processed = rows_processed
        if error is not None:
            self.error_message = str(error)
        self.finished_at = utcnow()
        self.duration_seconds = elapsed_seconds(self.started_at, self.finished_at)
