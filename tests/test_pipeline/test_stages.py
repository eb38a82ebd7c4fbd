"""
Tests for the pipeline stage base class and the concrete stages.

What we test
------------
RunMetadata:
  - mark_finished() sets status, rows, error and duration; bad values rejected.
PipelineStage:
  - Cannot be instantiated without _execute.
  - Run record persisted as <run_dir>/<slug>.json with success/failed status.
RecommendStage:
  - Writes recommendations.json (camelCase) and recommendations.csv.
  - Forwards every progress event; request snapshot recorded.
  - Scoring failure marks the run failed and re-raises.
ValidateDataStage:
  - Integrity report kept on the stage; rows = total enrollments.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pytest

from course_recommender.errors import ScoringFailure
from course_recommender.models.meta import RunMetadata
from course_recommender.models.progress import ProgressStage
from course_recommender.models.request import GenerationRequest, TraineeFilters
from course_recommender.pipeline.base import PipelineStage
from course_recommender.pipeline.recommend import RecommendStage
from course_recommender.pipeline.validate import ValidateDataStage
from course_recommender.recommendations.ranker import TraineeScorer


def _run_record(app_config, run) -> dict:
    path = Path(app_config.data.run_dir) / f"{run.run_slug}.json"
    return json.loads(path.read_text(encoding="utf-8"))


class TestRunMetadata:
    def _run(self) -> RunMetadata:
        return RunMetadata(run_slug="r1", pipeline_stage="recommend", config_snapshot={})

    def test_mark_finished_success(self):
        run = self._run()
        assert not run.is_finished
        run.mark_finished("success", rows_processed=6)
        assert run.is_finished
        assert run.rows_processed == 6
        assert run.duration_seconds >= 0

    def test_mark_finished_failed(self):
        run = self._run()
        run.mark_finished("failed", error=RuntimeError("boom"))
        assert run.status == "failed"
        assert run.error_message == "boom"

    def test_unknown_status(self):
        with pytest.raises(ValueError):
            self._run().mark_finished("done")

    def test_unknown_stage(self):
        with pytest.raises(ValueError):
            RunMetadata(run_slug="r1", pipeline_stage="train", config_snapshot={})


class TestPipelineStageABC:
    def test_cannot_instantiate_base_directly(self, app_config):
        with pytest.raises(TypeError):
            PipelineStage(config=app_config)  # type: ignore

    def test_subclass_without_execute(self, app_config):
        class IncompleteStage(PipelineStage):
            stage_name = "recommend"

        with pytest.raises(TypeError):
            IncompleteStage(config=app_config)  # type: ignore

    def test_stage_names(self):
        assert RecommendStage.stage_name == "recommend"
        assert ValidateDataStage.stage_name == "validate_data"


class TestRecommendStage:
    def test_writes_outputs(self, app_config, dataset_file):
        stage = RecommendStage(config=app_config)
        run = stage.run(dataset_path=str(dataset_file))

        assert run.status == "success"
        assert run.rows_processed == 6
        assert stage.result.total_trainees == 6

        json_path, csv_path = stage.output_paths
        payload = json.loads(json_path.read_text(encoding="utf-8"))
        assert payload["totalTrainees"] == 6
        assert payload["data"][0]["traineeId"] == 100

        with csv_path.open(encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows[0]["trainee_name"] == "Ana Silva"
        assert rows[0]["course_id"] == "4"

    def test_run_record_persisted(self, app_config, dataset_file):
        stage = RecommendStage(config=app_config)
        run = stage.run(
            dataset_path=str(dataset_file),
            request=GenerationRequest(max_trainees=2, chunk_size=1),
        )
        record = _run_record(app_config, run)
        assert record["status"] == "success"
        assert record["pipeline_stage"] == "recommend"
        assert record["request_snapshot"]["maxTrainees"] == 2
        assert record["config_snapshot"]["engine"]["chunk_size"] == 20
        assert record["dataset_path"] == str(dataset_file)
        assert len(record["output_files"]) == 2
        assert record["duration_seconds"] >= 0

    def test_forwards_events(self, app_config, dataset_file):
        seen = []
        RecommendStage(config=app_config).run(
            dataset_path=str(dataset_file),
            request=GenerationRequest(
                trainee_filters=TraineeFilters(name_search="Ana"), chunk_size=1
            ),
            on_event=seen.append,
        )
        assert seen[0].stage == ProgressStage.INITIALIZING
        assert seen[-1].stage == ProgressStage.COMPLETE
        assert len(seen) == 8

    def test_output_dir_override(self, app_config, dataset_file, tmp_path):
        stage = RecommendStage(config=app_config)
        stage.run(dataset_path=str(dataset_file), output_dir=str(tmp_path / "elsewhere"))
        assert all(p.parent == tmp_path / "elsewhere" for p in stage.output_paths)

    def test_scoring_failure_marks_run_failed(self, app_config, dataset_file, monkeypatch):
        def explode(self, trainee):
            raise RuntimeError("boom")

        monkeypatch.setattr(TraineeScorer, "score_trainee", explode)
        stage = RecommendStage(config=app_config)
        with pytest.raises(ScoringFailure):
            stage.run(dataset_path=str(dataset_file))

        records = list(Path(app_config.data.run_dir).glob("*.json"))
        assert len(records) == 1
        record = json.loads(records[0].read_text(encoding="utf-8"))
        assert record["status"] == "failed"
        assert "boom" in record["error_message"]
        assert stage.result is None

    def test_missing_dataset(self, app_config, tmp_path):
        with pytest.raises(FileNotFoundError):
            RecommendStage(config=app_config).run(dataset_path=str(tmp_path / "none.json"))


class TestValidateDataStage:
    def test_report(self, app_config, dataset_file):
        stage = ValidateDataStage(config=app_config)
        run = stage.run(dataset_path=str(dataset_file))
        assert run.status == "success"
        assert run.rows_processed == 11
        assert stage.report.invalid_course_ids == [99]

    def test_uses_configured_path(self, app_config, dataset_file):
        # app_config.data.dataset_path points at tmp_path/dataset.json
        run = ValidateDataStage(config=app_config).run()
        assert run.rows_processed == 11
