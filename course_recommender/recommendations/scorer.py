"""
Recommendation scoring: probability that a trainee takes a candidate course.

Probability formula (weighted sum, clamped to [0, 1])
-----------------------------------------------------
    probability = (
        0.1                                        # base
        + min(enrollment_count / 100, 0.3)         # popularity
        + 0.5 * max_similarity                     # best match vs. enrolled courses
        + (0.2 if status == CREATED else 0.0)      # status bonus
    )

Component explanations
----------------------
popularity (0–0.3):
    Total enrollments of the candidate course divided by a fixed constant
    of 100. 30+ enrollments saturate the component.

similarity (0–0.5):
    Half of the highest course-name similarity between the candidate and
    any course the trainee is enrolled in. 0 for trainees with no enrollments.

status_bonus (0 or 0.2):
    Courses still in the "created" state are pushed to fill first sessions.

This module is pure: no I/O, no dataset access.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from course_recommender.taxonomy.course_status import CourseStatus

BASE_PROBABILITY = 0.1
POPULARITY_DIVISOR = 100.0
POPULARITY_CAP = 0.3
SIMILARITY_WEIGHT = 0.5
STATUS_BONUS = 0.2


@dataclass(frozen=True)
class ProbabilityComponents:
    """All components of a recommendation probability.

    Attributes:
        base:         Constant prior (0.1).
        popularity:   0–0.3, from the candidate's enrollment count.
        similarity:   0–0.5, weighted best similarity to an enrolled course.
        status_bonus: 0.2 for CREATED courses, else 0.
    """

    base:         float
    popularity:   float
    similarity:   float
    status_bonus: float

    @property
    def total(self) -> float:
        """Clamped probability in [0, 1]."""
        return _clamp(
            self.base + self.popularity + self.similarity + self.status_bonus,
            0.0,
            1.0,
        )


def compute_probability(
    enrollment_count: int,
    max_similarity:   float,
    status:           int,
) -> ProbabilityComponents:
    """Compute the probability components for one (trainee, candidate) pair.

    Args:
        enrollment_count: Sanitized enrollments of the candidate course.
        max_similarity:   Best similarity between the candidate and the
                          trainee's enrolled courses (0 when none).
        status:           Candidate course status code.

    Returns:
        ProbabilityComponents; use ``.total`` for the clamped probability.
    """
    popularity = min(max(enrollment_count, 0) / POPULARITY_DIVISOR, POPULARITY_CAP)
    similarity = SIMILARITY_WEIGHT * _clamp(max_similarity, 0.0, 1.0)
    status_bonus = STATUS_BONUS if status == CourseStatus.CREATED else 0.0

    return ProbabilityComponents(
        base=BASE_PROBABILITY,
        popularity=popularity,
        similarity=similarity,
        status_bonus=status_bonus,
    )


def build_explanation(probability: float) -> str:
    """Templated explanation embedding the rounded percentage."""
    return (
        f"{round_half_up(probability * 100)}% match based on enrollment "
        "patterns and course similarity"
    )


def round_half_up(value: float) -> int:
    """Round halves up (34.5 → 35); ``round()`` rounds halves to even."""
    return int(math.floor(value + 0.5))


# ── Helper ────────────────────────────────────────────────────────────────────

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
