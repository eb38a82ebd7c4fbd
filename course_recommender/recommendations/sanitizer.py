"""
Dataset sanitization: drop enrollments that reference unknown courses.

Spreadsheet exports routinely contain enrollments for courses that were
deleted from the catalog. Scoring assumes every enrollment's ``course_id``
resolves, so every run sanitizes first.

``sanitize_dataset()`` is pure: it returns a new ``Dataset`` and never
touches its input. ``integrity_report()`` summarises the same problem for
operators without changing anything.
"""

from __future__ import annotations

import logging

from course_recommender.models.dataset import Dataset
from course_recommender.models.statistics import AffectedTrainee, IntegrityReport

logger = logging.getLogger(__name__)

_MAX_REPORTED_COURSE_IDS = 10
_MAX_REPORTED_TRAINEES = 5


def sanitize_dataset(dataset: Dataset) -> Dataset:
    """Return a copy of ``dataset`` keeping only enrollments with a known course.

    Courses and trainees pass through unchanged. An empty course list yields
    an empty enrollment list.

    Args:
        dataset: Raw dataset.

    Returns:
        New ``Dataset`` with filtered ``enrollments``.
    """
    valid_ids = dataset.course_ids()
    kept = []
    for enrollment in dataset.enrollments:
        if enrollment.course_id in valid_ids:
            kept.append(enrollment)
        else:
            logger.debug(
                "Removing invalid enrollment: trainee=%s course=%s not found",
                enrollment.trainee_id, enrollment.course_id,
            )

    removed = len(dataset.enrollments) - len(kept)
    logger.info(
        "Data integrity: %d → %d enrollments (removed %d invalid)",
        len(dataset.enrollments), len(kept), removed,
    )
    return Dataset(
        courses=dataset.courses,
        trainees=dataset.trainees,
        enrollments=kept,
    )


def integrity_report(dataset: Dataset) -> IntegrityReport:
    """Summarise enrollments that reference unknown courses.

    Args:
        dataset: Raw (unsanitized) dataset.

    Returns:
        ``IntegrityReport`` with counts, the first 10 unknown course ids (in
        order of first appearance) and up to 5 affected trainees.
    """
    valid_ids = dataset.course_ids()
    invalid = [e for e in dataset.enrollments if e.course_id not in valid_ids]

    unknown_course_ids = list(dict.fromkeys(e.course_id for e in invalid))
    affected_ids = {e.trainee_id for e in invalid}
    affected = [t for t in dataset.trainees if t.id in affected_ids]

    return IntegrityReport(
        total_courses=len(dataset.courses),
        total_trainees=len(dataset.trainees),
        total_enrollments=len(dataset.enrollments),
        invalid_enrollments=len(invalid),
        unique_invalid_course_ids=len(unknown_course_ids),
        affected_trainees=len(affected),
        invalid_course_ids=unknown_course_ids[:_MAX_REPORTED_COURSE_IDS],
        sample_affected_trainees=[
            AffectedTrainee(id=t.id, name=t.name, email=t.email)
            for t in affected[:_MAX_REPORTED_TRAINEES]
        ],
    )
