"""
Tests for the dataset, request and output models.

What we test
------------
Dataset.from_payload():
  - Accepts camelCase and snake_case item keys.
  - Missing or null collections raise InvalidDatasetError.
  - Record validation failures are wrapped in InvalidDatasetError.
Course / Trainee:
  - Status must be 1–5; text fields coerce None and numbers.
  - display_name falls back to "Trainee <id>".
coerce_entity_id():
  - Numeric text and integral floats become int; other text stays str.
GenerationRequest:
  - Field constraints; from_config() takes defaults and ignores None overrides.
Wire output:
  - to_wire() uses camelCase keys.
Models are frozen.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from course_recommender.config import EngineConfig
from course_recommender.errors import InvalidDatasetError
from course_recommender.models.common import coerce_entity_id
from course_recommender.models.dataset import Course, Dataset, Trainee
from course_recommender.models.progress import ProgressEvent, ProgressStage
from course_recommender.models.recommendation import Recommendation, TraineeResult
from course_recommender.models.request import GenerationRequest, TraineeFilters


# ── Dataset payloads ──────────────────────────────────────────────────────────

class TestDatasetFromPayload:
    def test_camel_case_payload(self):
        ds = Dataset.from_payload({
            "courses": [{"id": 1, "name": "Excel", "status": 2}],
            "trainees": [{"id": "M-1", "name": "Ana"}],
            "enrollments": [{"traineeId": "M-1", "courseId": 1, "enrollmentDate": "2024-01-01"}],
        })
        assert ds.enrollments[0].trainee_id == "M-1"
        assert ds.enrollments[0].enrollment_date == "2024-01-01"

    def test_snake_case_payload(self):
        ds = Dataset.from_payload({
            "courses": [],
            "trainees": [],
            "enrollments": [{"trainee_id": 1, "course_id": 2}],
        })
        assert ds.enrollments[0].course_id == 2

    @pytest.mark.parametrize("missing", ["courses", "trainees", "enrollments"])
    def test_missing_collection(self, missing):
        payload = {"courses": [], "trainees": [], "enrollments": []}
        del payload[missing]
        with pytest.raises(InvalidDatasetError, match=missing):
            Dataset.from_payload(payload)

    def test_null_collection(self):
        with pytest.raises(InvalidDatasetError):
            Dataset.from_payload({"courses": None, "trainees": [], "enrollments": []})

    def test_not_a_mapping(self):
        with pytest.raises(InvalidDatasetError):
            Dataset.from_payload([1, 2, 3])

    def test_bad_record_wrapped(self):
        with pytest.raises(InvalidDatasetError, match="failed validation"):
            Dataset.from_payload({
                "courses": [{"id": 1, "name": "X", "status": 9}],
                "trainees": [],
                "enrollments": [],
            })

    def test_round_trip_of_sample(self, sample_dataset):
        assert Dataset.from_payload(sample_dataset.to_wire()) == sample_dataset


# ── Entities ──────────────────────────────────────────────────────────────────

class TestEntities:
    def test_course_status_default(self):
        assert Course(id=1, name="X").status == 1

    @pytest.mark.parametrize("status", [0, 6])
    def test_course_status_out_of_range(self, status):
        with pytest.raises(ValidationError):
            Course(id=1, name="X", status=status)

    def test_trainee_text_coercion(self):
        t = Trainee(id=1, name=None, phone=551000001)
        assert t.name == ""
        assert t.phone == "551000001"

    def test_display_name(self):
        assert Trainee(id=7).display_name == "Trainee 7"
        assert Trainee(id=7, name="Ana").display_name == "Ana"

    def test_frozen(self):
        course = Course(id=1, name="X")
        with pytest.raises(ValidationError):
            course.name = "Y"


class TestCoerceEntityId:
    @pytest.mark.parametrize(
        "raw,expected",
        [(5, 5), (5.0, 5), (" 42 ", 42), ("M-17", "M-17"), ("007", 7)],
    )
    def test_coercion(self, raw, expected):
        assert coerce_entity_id(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", True])
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            coerce_entity_id(raw)


# ── Request ───────────────────────────────────────────────────────────────────

class TestGenerationRequest:
    def test_defaults(self):
        r = GenerationRequest()
        assert (r.max_recommendations, r.min_probability, r.max_trainees, r.chunk_size) == (5, 0.1, 50, 20)
        assert r.include_explanations is True
        assert r.use_ai is False
        assert r.trainee_filters == TraineeFilters()

    @pytest.mark.parametrize(
        "field,value",
        [("max_recommendations", 0), ("min_probability", 1.5), ("max_trainees", 0), ("chunk_size", 0)],
    )
    def test_field_constraints(self, field, value):
        with pytest.raises(ValidationError):
            GenerationRequest(**{field: value})

    def test_negative_enrollment_bound_rejected(self):
        with pytest.raises(ValidationError):
            TraineeFilters(min_enrollments=-1)

    def test_accepts_camel_case(self):
        r = GenerationRequest.model_validate({
            "maxRecommendations": 3,
            "traineeFilters": {"hasEnrollments": True, "enrolledInCourse": [1, "A"]},
        })
        assert r.max_recommendations == 3
        assert r.trainee_filters.enrolled_in_course == [1, "A"]

    def test_from_config(self):
        engine = EngineConfig(max_recommendations=7, chunk_size=10)
        r = GenerationRequest.from_config(engine, chunk_size=None, max_trainees=5)
        assert r.max_recommendations == 7
        assert r.chunk_size == 10
        assert r.max_trainees == 5


# ── Wire output ───────────────────────────────────────────────────────────────

class TestWireFormat:
    def test_trainee_result_camel_case(self):
        result = TraineeResult(
            trainee_id=1,
            trainee_name="Ana",
            recommendations=[
                Recommendation(course_id=2, course_name="Excel", course_status=1, probability=0.48)
            ],
        )
        wire = result.to_wire()
        assert set(wire) >= {"traineeId", "traineeName", "currentCourses", "recommendations"}
        assert wire["recommendations"][0]["courseStatus"] == 1
        assert wire["recommendations"][0]["similarCourses"] == []

    def test_progress_event_stage_serialises_as_text(self):
        event = ProgressEvent(stage=ProgressStage.CHUNK_START, message="m", progress=20)
        wire = event.to_wire()
        assert wire["stage"] == "chunk_start"
        assert wire["processedTrainees"] == 0

    def test_progress_bounds(self):
        with pytest.raises(ValidationError):
            ProgressEvent(stage=ProgressStage.COMPLETE, message="m", progress=101)

    def test_terminal_flag(self):
        assert ProgressEvent(stage=ProgressStage.ERROR, message="m", progress=50).is_terminal
        assert not ProgressEvent(stage=ProgressStage.CHUNK_START, message="m", progress=20).is_terminal
