"""
In-memory read queries over a loaded dataset.

These are the aggregate and lookup queries behind the dashboard and CLI:

  compute_statistics      — catalog totals, status breakdown, top courses,
                            trainee engagement levels, averages
  search_trainees         — free-text search ordered by engagement
  list_filtered_trainees  — filter pipeline + sorting + pagination
  find_prospects          — trainees not yet enrolled in a given course

All functions are pure and operate on an already sanitized ``Dataset``;
``DatasetSession`` wraps them with locking and caching.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from typing import Literal, Optional

from course_recommender.models.common import EntityId
from course_recommender.models.dataset import Dataset, Enrollment, Trainee
from course_recommender.models.recommendation import CurrentCourse
from course_recommender.models.request import TraineeFilters
from course_recommender.models.statistics import (
    CourseEnrollmentCount,
    DatasetStatistics,
    StatusCount,
    TraineePage,
    TraineeSummary,
)
from course_recommender.recommendations.filters import apply_trainee_filters
from course_recommender.taxonomy.course_status import status_label

TOP_COURSES_LIMIT = 10

ENGAGEMENT_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("high", 5),
    ("medium", 2),
    ("low", 1),
)

TraineeSortField = Literal["id", "name", "email", "enrollment_count"]


def engagement_level(enrollment_count: int) -> str:
    for level, threshold in ENGAGEMENT_THRESHOLDS:
        if enrollment_count >= threshold:
            return level
    return "none"


def compute_statistics(dataset: Dataset) -> DatasetStatistics:
    """Aggregate catalog and engagement statistics.

    Averages are 0.0 when the denominator (trainees or courses) is 0.
    """
    course_counts = Counter(e.course_id for e in dataset.enrollments)
    trainee_counts = Counter(e.trainee_id for e in dataset.enrollments)

    status_counts = Counter(c.status for c in dataset.courses)
    courses_by_status = [
        StatusCount(status=status, label=status_label(status), count=count)
        for status, count in sorted(status_counts.items())
    ]

    # Stable sort keeps catalog order among equally popular courses.
    ranked = sorted(dataset.courses, key=lambda c: -course_counts[c.id])
    top_courses = [
        CourseEnrollmentCount(
            course_id=c.id, course_name=c.name, enrollment_count=course_counts[c.id]
        )
        for c in ranked[:TOP_COURSES_LIMIT]
    ]

    engagement = {level: 0 for level, _ in ENGAGEMENT_THRESHOLDS}
    engagement["none"] = 0
    for trainee in dataset.trainees:
        engagement[engagement_level(trainee_counts[trainee.id])] += 1

    total_enrollments = len(dataset.enrollments)
    return DatasetStatistics(
        total_courses=len(dataset.courses),
        total_trainees=len(dataset.trainees),
        total_enrollments=total_enrollments,
        courses_by_status=courses_by_status,
        top_courses=top_courses,
        engagement_levels=engagement,
        average_enrollments_per_trainee=_safe_ratio(total_enrollments, len(dataset.trainees)),
        average_enrollments_per_course=_safe_ratio(total_enrollments, len(dataset.courses)),
    )


def search_trainees(
    dataset: Dataset,
    term: str,
    limit: int = 50,
    include_enrollments: bool = False,
) -> list[TraineeSummary]:
    """Case-insensitive substring search over name, email and phone.

    Results are ordered by enrollment count (desc), then name (asc). A blank
    term matches every trainee.
    """
    needle = term.strip().lower()
    counts = Counter(e.trainee_id for e in dataset.enrollments)

    matches = [
        t for t in dataset.trainees
        if needle in t.name.lower() or needle in t.email.lower() or needle in t.phone.lower()
    ]
    matches.sort(key=lambda t: (-counts[t.id], t.name.lower()))
    matches = matches[:limit]

    enrollments_by_trainee = _current_courses_by_trainee(dataset) if include_enrollments else {}
    return [
        _summary(
            t,
            counts[t.id],
            _newest_first(enrollments_by_trainee.get(t.id, [])) if include_enrollments else None,
        )
        for t in matches
    ]


def list_filtered_trainees(
    dataset: Dataset,
    filters: Optional[TraineeFilters] = None,
    page: int = 1,
    page_size: int = 50,
    sort_by: TraineeSortField = "id",
    sort_order: Literal["asc", "desc"] = "asc",
) -> TraineePage:
    """Run the trainee filter pipeline and return one page of summaries.

    Sorting is skipped for random samples so the sample order is preserved.

    Raises:
        InvalidFilterError: On contradictory filters.
        ValueError:         On a non-positive page or page size, or an
                            unknown sort field.
    """
    if page < 1 or page_size < 1:
        raise ValueError(f"page and page_size must be >= 1, got {page}, {page_size}.")
    if sort_by not in ("id", "name", "email", "enrollment_count"):
        raise ValueError(f"Unknown sort field '{sort_by}'.")

    filters = filters or TraineeFilters()
    selected = apply_trainee_filters(dataset.trainees, dataset.enrollments, filters)
    counts = Counter(e.trainee_id for e in dataset.enrollments)

    if not filters.random_sample:
        selected.sort(
            key=lambda t: _sort_value(t, sort_by, counts),
            reverse=sort_order == "desc",
        )

    total = len(selected)
    start = (page - 1) * page_size
    items = [_summary(t, counts[t.id]) for t in selected[start : start + page_size]]
    return TraineePage(
        items=items,
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size) if total else 0,
    )


def find_prospects(dataset: Dataset, course_id: EntityId) -> list[TraineeSummary]:
    """Trainees not enrolled in ``course_id``, in dataset order.

    Raises:
        ValueError: If the course is not in the catalog.
    """
    if course_id not in dataset.course_ids():
        raise ValueError(f"Unknown course id '{course_id}'.")

    counts = Counter(e.trainee_id for e in dataset.enrollments)
    enrolled = {e.trainee_id for e in dataset.enrollments if e.course_id == course_id}
    return [_summary(t, counts[t.id]) for t in dataset.trainees if t.id not in enrolled]


# ── Helpers ───────────────────────────────────────────────────────────────────

def _safe_ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


def _summary(
    trainee: Trainee,
    enrollment_count: int,
    enrollments: Optional[list[CurrentCourse]] = None,
) -> TraineeSummary:
    return TraineeSummary(
        id=trainee.id,
        name=trainee.name,
        email=trainee.email,
        phone=trainee.phone,
        enrollment_count=enrollment_count,
        enrollments=enrollments,
    )


def _current_courses_by_trainee(dataset: Dataset) -> dict[EntityId, list[CurrentCourse]]:
    courses = {c.id: c for c in dataset.courses}
    result: dict[EntityId, list[CurrentCourse]] = defaultdict(list)
    for enrollment in dataset.enrollments:
        course = courses.get(enrollment.course_id)
        if course is not None:
            result[enrollment.trainee_id].append(_current_course(course, enrollment))
    return result


def _current_course(course, enrollment: Enrollment) -> CurrentCourse:
    return CurrentCourse(
        course_id=course.id,
        course_name=course.name,
        course_status=course.status,
        enrollment_date=enrollment.enrollment_date,
    )


def _newest_first(courses: list[CurrentCourse]) -> list[CurrentCourse]:
    dated = sorted(
        (c for c in courses if c.enrollment_date),
        key=lambda c: c.enrollment_date,
        reverse=True,
    )
    return dated + [c for c in courses if not c.enrollment_date]


def _sort_value(trainee: Trainee, field: str, counts: Counter):
    if field == "enrollment_count":
        return counts[trainee.id]
    if field == "id":
        # Mixed int/str ids: ints numerically, then strings lexically.
        numeric = trainee.id if isinstance(trainee.id, int) else 0
        return (isinstance(trainee.id, str), numeric, str(trainee.id))
    return getattr(trainee, field).lower()
