"""
Read-model shapes returned by dataset queries.

These back the cached query entry points on ``DatasetSession``:
statistics, trainee search, filtered listings and the integrity report.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from course_recommender.models.common import EntityId, WireModel
from course_recommender.models.recommendation import CurrentCourse


class StatusCount(WireModel):
    status: int
    label: str
    count: int


class CourseEnrollmentCount(WireModel):
    course_id: EntityId
    course_name: str
    enrollment_count: int


class DatasetStatistics(WireModel):
    """Aggregate catalog and engagement statistics.

    Engagement levels bucket trainees by enrollment count:
    ``high`` ≥ 5, ``medium`` ≥ 2, ``low`` ≥ 1, ``none`` = 0.
    """

    total_courses: int
    total_trainees: int
    total_enrollments: int
    courses_by_status: list[StatusCount]
    top_courses: list[CourseEnrollmentCount]
    engagement_levels: dict[str, int]
    average_enrollments_per_trainee: float
    average_enrollments_per_course: float


class TraineeSummary(WireModel):
    """A trainee row with its enrollment count (search and listings)."""

    id: EntityId
    name: str
    email: str = ""
    phone: str = ""
    enrollment_count: int = 0
    enrollments: Optional[list[CurrentCourse]] = None


class TraineePage(WireModel):
    """One page of a filtered trainee listing."""

    items: list[TraineeSummary]
    page: int
    page_size: int
    total: int
    total_pages: int


class AffectedTrainee(WireModel):
    id: EntityId
    name: str
    email: str = ""


class IntegrityReport(WireModel):
    """Referential integrity summary of a raw (unsanitized) dataset."""

    total_courses: int
    total_trainees: int
    total_enrollments: int
    invalid_enrollments: int
    unique_invalid_course_ids: int
    affected_trainees: int
    invalid_course_ids: list[EntityId] = Field(default_factory=list)
    sample_affected_trainees: list[AffectedTrainee] = Field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return self.invalid_enrollments == 0
