"""
RecommendStage — run the recommendation engine over a dataset file.

Flow
----
  1. Load the dataset (JSON file or CSV directory) via ``load_dataset``.
  2. Load it into a ``DatasetSession`` (sanitized copy + lock).
  3. Stream the run, forwarding every ``ProgressEvent`` to ``on_event``.
  4. On ``complete``: write ``recommendations.json`` (camelCase wire form)
     and ``recommendations.csv`` (one row per trainee × recommendation)
     to ``config.data.output_dir``.
  5. On ``error``: raise ``ScoringFailure`` so the run record is ``failed``.

Returns the number of trainees scored.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from course_recommender.ai.providers import AIProvider
from course_recommender.ingestion.dataset_loader import load_dataset
from course_recommender.models.meta import RunMetadata
from course_recommender.models.progress import ProgressEvent
from course_recommender.models.recommendation import GenerationResult
from course_recommender.models.request import GenerationRequest
from course_recommender.pipeline.base import PipelineStage
from course_recommender.recommendations.executor import drain_events
from course_recommender.reporting.export import (
    RECOMMENDATION_COLUMNS,
    export_to_csv,
    export_to_json,
    flatten_results_for_export,
)
from course_recommender.session import DatasetSession

logger = logging.getLogger(__name__)

RESULT_JSON_NAME = "recommendations.json"
RESULT_CSV_NAME = "recommendations.csv"


class RecommendStage(PipelineStage):
    """Generate recommendations for a dataset and write the output files.

    After a successful ``run()``, ``result`` holds the ``GenerationResult``
    and ``output_paths`` the files written.
    """

    stage_name = "recommend"

    def __init__(self, config, run_dir: Optional[str] = None) -> None:
        super().__init__(config, run_dir)
        self.result: Optional[GenerationResult] = None
        self.output_paths: list[Path] = []

    def _execute(
        self,
        run: RunMetadata,
        request: Optional[GenerationRequest] = None,
        dataset_path: Optional[str] = None,
        output_dir: Optional[str] = None,
        on_event: Optional[Callable[[ProgressEvent], None]] = None,
        ai_provider: Optional[AIProvider] = None,
        **kwargs,
    ) -> int:
        """Load, score and export.

        Args:
            run:          In-progress RunMetadata (mutable).
            request:      Generation parameters; defaults from ``config.engine``.
            dataset_path: Dataset override; defaults to ``config.data.dataset_path``.
            output_dir:   Output override; defaults to ``config.data.output_dir``.
            on_event:     Callback receiving every progress event.
            ai_provider:  Provider for ``request.use_ai`` enrichment.

        Returns:
            Number of trainees scored.
        """
        request = request or GenerationRequest.from_config(self.config.engine)
        run.request_snapshot = request.to_wire()
        path = Path(dataset_path or self.config.data.dataset_path)
        out_dir = Path(output_dir or self.config.data.output_dir)
        run.dataset_path = str(path)

        if request.use_ai and ai_provider is None:
            logger.warning("use_ai requested but no AI provider is configured; skipping enrichment.")

        session = DatasetSession(self.config, session_id=run.run_slug, ai_provider=ai_provider)
        session.load(load_dataset(path))

        result = drain_events(session.stream_recommendations(request), on_event)
        self.result = result
        self.output_paths = [
            export_to_json(result.to_wire(), out_dir / RESULT_JSON_NAME),
            export_to_csv(
                flatten_results_for_export(result),
                out_dir / RESULT_CSV_NAME,
                fieldnames=RECOMMENDATION_COLUMNS,
            ),
        ]
        run.output_files = [str(p) for p in self.output_paths]
        logger.info(
            "RecommendStage complete: %d trainee(s), %d recommendation(s) -> %s",
            result.total_trainees, result.recommendations_generated, out_dir,
        )
        return result.total_trainees
