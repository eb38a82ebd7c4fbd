"""
ValidateDataStage — load a dataset and report referential integrity.

Loading validates structure (missing collections and malformed records
raise ``InvalidDatasetError``). The integrity report then counts
enrollments that point at unknown courses; those are not fatal because
every recommendation run drops them during sanitization.

Returns the number of enrollments inspected.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from course_recommender.ingestion.dataset_loader import load_dataset
from course_recommender.models.meta import RunMetadata
from course_recommender.models.statistics import IntegrityReport
from course_recommender.pipeline.base import PipelineStage
from course_recommender.recommendations.sanitizer import integrity_report

logger = logging.getLogger(__name__)


class ValidateDataStage(PipelineStage):
    """Validate a dataset file; the report is kept on ``self.report``."""

    stage_name = "validate_data"

    def __init__(self, config, run_dir: Optional[str] = None) -> None:
        super().__init__(config, run_dir)
        self.report: Optional[IntegrityReport] = None

    def _execute(
        self,
        run: RunMetadata,
        dataset_path: Optional[str] = None,
        **kwargs,
    ) -> int:
        path = Path(dataset_path or self.config.data.dataset_path)
        run.dataset_path = str(path)
        dataset = load_dataset(path)
        self.report = integrity_report(dataset)

        if self.report.is_clean:
            logger.info("Dataset %s is clean.", path)
        else:
            logger.warning(
                "Dataset %s: %d invalid enrollment(s) across %d unknown course id(s).",
                path, self.report.invalid_enrollments, self.report.unique_invalid_course_ids,
            )
        return self.report.total_enrollments
