"""
Base class for auditable pipeline stages.

A stage is constructed with an ``AppConfig`` and executed with ``run()``.
``run()`` opens a ``RunMetadata`` record, hands it to the subclass's
``_execute()`` (which may fill in dataset path, request and outputs), closes
it as ``success`` or ``failed`` and writes it to ``<run_dir>/<run_slug>.json``.

If the record cannot be written the error is logged; the stage's own result
or exception is returned or raised unchanged.

Usage::

    class ValidateDataStage(PipelineStage):
        stage_name = "validate_data"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            ...
            return report.total_enrollments

    run = ValidateDataStage(config=app_config).run(dataset_path="data/export")
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from uuid import uuid4

from course_recommender.config import AppConfig
from course_recommender.models.meta import RunMetadata
from course_recommender.reporting.export import export_to_json

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Subclasses set ``stage_name`` and implement ``_execute()``.

    Attributes:
        config:  Application configuration.
        run_dir: Directory receiving run records (``config.data.run_dir``).
    """

    stage_name: str

    def __init__(self, config: AppConfig, run_dir: Optional[str] = None) -> None:
        self.config = config
        self.run_dir = Path(run_dir or config.data.run_dir)

    def run(self, **kwargs) -> RunMetadata:
        """Execute the stage and return its closed run record.

        Raises:
            Exception: Whatever ``_execute()`` raised, after the failed run
                record has been written.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(mode="json"),
        )
        logger.info("Stage [%s] starting | run_slug=%s", self.stage_name, run.run_slug)

        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            run.mark_finished("failed", error=exc)
            logger.error(
                "Stage [%s] FAILED after %.2fs: %s | run_slug=%s",
                self.stage_name, run.duration_seconds, exc, run.run_slug,
            )
            self.write_run_record(run)
            raise

        run.mark_finished("success", rows_processed=rows)
        logger.info(
            "Stage [%s] completed | rows=%d | %.2fs | run_slug=%s",
            self.stage_name, rows, run.duration_seconds, run.run_slug,
        )
        self.write_run_record(run)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Do the stage's work; return the number of rows processed."""

    def write_run_record(self, run: RunMetadata) -> Optional[Path]:
        """Write ``run`` as JSON; ``None`` if the write failed."""
        path = self.run_dir / f"{run.run_slug}.json"
        try:
            return export_to_json(run.model_dump(mode="json"), path)
        except OSError as exc:
            logger.error("Could not write run record %s: %s", path, exc)
            return None
