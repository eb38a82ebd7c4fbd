"""
Trainee filter pipeline: selects the working set submitted to scoring.

Order of application
--------------------
    1. name_search          case-insensitive substring of name
    2. email_search         case-insensitive substring of email
    3. phone_search         substring of phone
    4. has_enrollments      ≥1 enrollment (True) / none (False)
    5. min/max_enrollments  inclusive bounds on enrollment count
    6. enrolled_in_course   enrolled in any of the given course ids
    7. random_sample        uniform sample without replacement (seedable)
       — or max_results     cap, only when random_sample is off

Predicates 1–6 commute; sampling is always last. The caller's hard
``max_trainees`` cap is applied by the executor, not here.

``validate_filters()`` must be called before any scoring so contradictory
combinations fail fast with ``InvalidFilterError``.
"""

from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from typing import Callable, Iterable, Optional

from course_recommender.errors import InvalidFilterError
from course_recommender.models.common import EntityId
from course_recommender.models.dataset import Enrollment, Trainee
from course_recommender.models.request import TraineeFilters

logger = logging.getLogger(__name__)

TraineePredicate = Callable[[Trainee], bool]


def validate_filters(filters: TraineeFilters) -> None:
    """Reject contradictory filter combinations.

    Raises:
        InvalidFilterError: If ``min_enrollments > max_enrollments``, or
            ``has_enrollments`` contradicts the enrollment bounds.
    """
    lo, hi = filters.min_enrollments, filters.max_enrollments
    if lo is not None and hi is not None and lo > hi:
        raise InvalidFilterError(
            f"min_enrollments ({lo}) must be <= max_enrollments ({hi})."
        )
    if filters.has_enrollments is False and lo is not None and lo >= 1:
        raise InvalidFilterError(
            f"has_enrollments=False contradicts min_enrollments={lo}."
        )
    if filters.has_enrollments is True and hi == 0:
        raise InvalidFilterError("has_enrollments=True contradicts max_enrollments=0.")


def enrollment_counts(enrollments: Iterable[Enrollment]) -> Counter:
    """Enrollment count per trainee id."""
    return Counter(e.trainee_id for e in enrollments)


def courses_by_trainee(enrollments: Iterable[Enrollment]) -> dict[EntityId, set[EntityId]]:
    """Set of enrolled course ids per trainee id."""
    result: dict[EntityId, set[EntityId]] = defaultdict(set)
    for e in enrollments:
        result[e.trainee_id].add(e.course_id)
    return dict(result)


def build_predicates(
    filters: TraineeFilters,
    enrollments: list[Enrollment],
) -> list[tuple[str, TraineePredicate]]:
    """Return the active ``(name, predicate)`` pairs in application order."""
    predicates: list[tuple[str, TraineePredicate]] = []

    name_term = _search_term(filters.name_search, casefold=True)
    if name_term is not None:
        predicates.append(("name_search", lambda t: name_term in t.name.lower()))

    email_term = _search_term(filters.email_search, casefold=True)
    if email_term is not None:
        predicates.append(("email_search", lambda t: email_term in t.email.lower()))

    phone_term = _search_term(filters.phone_search, casefold=False)
    if phone_term is not None:
        predicates.append(("phone_search", lambda t: phone_term in t.phone))

    needs_counts = (
        filters.has_enrollments is not None
        or filters.min_enrollments is not None
        or filters.max_enrollments is not None
    )
    counts = enrollment_counts(enrollments) if needs_counts else Counter()

    if filters.has_enrollments is not None:
        wanted = filters.has_enrollments
        predicates.append(("has_enrollments", lambda t: (counts[t.id] > 0) == wanted))

    if filters.min_enrollments is not None or filters.max_enrollments is not None:
        lo = filters.min_enrollments
        hi = filters.max_enrollments
        predicates.append((
            "enrollment_range",
            lambda t: (lo is None or counts[t.id] >= lo) and (hi is None or counts[t.id] <= hi),
        ))

    if filters.enrolled_in_course:
        wanted_courses = set(filters.enrolled_in_course)
        enrolled = courses_by_trainee(enrollments)
        predicates.append((
            "enrolled_in_course",
            lambda t: not wanted_courses.isdisjoint(enrolled.get(t.id, ())),
        ))

    return predicates


def apply_trainee_filters(
    trainees: list[Trainee],
    enrollments: list[Enrollment],
    filters: Optional[TraineeFilters] = None,
    rng: Optional[random.Random] = None,
) -> list[Trainee]:
    """Apply all active filters and the final sampling/cap step.

    Args:
        trainees:    Candidate trainees (input order is preserved by predicates).
        enrollments: Sanitized enrollments used for count/course predicates.
        filters:     Filter settings; ``None`` keeps everyone.
        rng:         Random source for sampling. Defaults to
                     ``random.Random(filters.random_seed)``.

    Returns:
        The filtered (and possibly sampled or capped) trainee list.

    Raises:
        InvalidFilterError: On contradictory filters.
    """
    if filters is None:
        return list(trainees)

    validate_filters(filters)

    filtered = list(trainees)
    for name, predicate in build_predicates(filters, enrollments):
        before = len(filtered)
        filtered = [t for t in filtered if predicate(t)]
        logger.debug("Filter %s: %d → %d trainees", name, before, len(filtered))

    if filters.random_sample:
        rng = rng or random.Random(filters.random_seed)
        filtered = sample_trainees(filtered, filters.random_sample_size, rng)
    elif filters.max_results is not None:
        filtered = filtered[: filters.max_results]

    logger.info("Applied filters: %d → %d trainees", len(trainees), len(filtered))
    return filtered


def sample_trainees(
    trainees: list[Trainee],
    size: int,
    rng: random.Random,
) -> list[Trainee]:
    """Uniform sample of ``size`` distinct trainees, or all of them shuffled."""
    return rng.sample(trainees, k=min(size, len(trainees)))


def _search_term(value: Optional[str], casefold: bool) -> Optional[str]:
    """Normalise a search string; blank or missing means the filter is inactive."""
    if value is None:
        return None
    term = value.strip()
    if not term:
        return None
    return term.lower() if casefold else term
