"""
Recommendation ranker: scores every candidate course for a trainee and
returns the top-N as a ``TraineeResult``.

Usage flow
----------
1. TraineeScorer(sanitized_dataset, similarity_index, ...)
   -> precomputes course lookup, course enrollment counts and
      enrollments per trainee (once per request).

2. scorer.score_trainee(trainee)
   -> TraineeResult  (candidates = courses the trainee is not enrolled in,
                      probability >= min_probability, sorted desc, top-N)

3. filter_and_sort_results(results, ...)
   -> re-filter / re-sort already computed results for presentation.

Ranking is deterministic: ties on probability keep catalog order.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Literal, Optional

from course_recommender.models.common import EntityId
from course_recommender.models.dataset import Dataset, Enrollment, Trainee
from course_recommender.models.recommendation import (
    CurrentCourse,
    Recommendation,
    SimilarCourse,
    TraineeResult,
)
from course_recommender.models.request import GenerationRequest
from course_recommender.recommendations.scorer import build_explanation, compute_probability
from course_recommender.recommendations.similarity import SimilarityIndex

SIMILAR_COURSE_THRESHOLD = 0.1
MAX_SIMILAR_COURSES = 2

SortField = Literal["probability", "course_status"]
_SORT_FIELDS: frozenset[str] = frozenset({"probability", "course_status"})


class TraineeScorer:
    """Per-request scoring engine over a sanitized dataset.

    Attributes:
        max_recommendations:  Top-N cut per trainee.
        min_probability:      Candidates below this (unrounded) are dropped.
        include_explanations: Whether to attach the templated explanation.
    """

    def __init__(
        self,
        dataset: Dataset,
        index: SimilarityIndex,
        max_recommendations: int = 5,
        min_probability: float = 0.1,
        include_explanations: bool = True,
    ) -> None:
        self.index = index
        self.max_recommendations = max_recommendations
        self.min_probability = min_probability
        self.include_explanations = include_explanations

        self._courses = {c.id: c for c in dataset.courses}
        self._course_counts = Counter(e.course_id for e in dataset.enrollments)
        self._enrollments: dict[EntityId, list[Enrollment]] = defaultdict(list)
        for enrollment in dataset.enrollments:
            self._enrollments[enrollment.trainee_id].append(enrollment)

    @classmethod
    def from_request(
        cls,
        dataset: Dataset,
        index: SimilarityIndex,
        request: GenerationRequest,
    ) -> "TraineeScorer":
        return cls(
            dataset,
            index,
            max_recommendations=request.max_recommendations,
            min_probability=request.min_probability,
            include_explanations=request.include_explanations,
        )

    def enrolled_course_ids(self, trainee_id: EntityId) -> list[EntityId]:
        """Distinct enrolled course ids in enrollment order."""
        return list(dict.fromkeys(e.course_id for e in self._enrollments.get(trainee_id, ())))

    def score_trainee(self, trainee: Trainee) -> TraineeResult:
        """Rank candidate courses for one trainee."""
        enrolled = self.enrolled_course_ids(trainee.id)
        return TraineeResult(
            trainee_id=trainee.id,
            trainee_name=trainee.display_name,
            trainee_email=trainee.email,
            trainee_phone=trainee.phone,
            current_courses=self.current_courses(trainee.id),
            recommendations=self.rank_candidates(enrolled),
        )

    def rank_candidates(self, enrolled: list[EntityId]) -> list[Recommendation]:
        """Score every non-enrolled course and return the top-N by probability."""
        enrolled_set = set(enrolled)
        # (unrounded probability, recommendation); ranking never uses the rounded value.
        scored: list[tuple[float, Recommendation]] = []

        for course in self._courses.values():
            if course.id in enrolled_set:
                continue

            components = compute_probability(
                enrollment_count=self._course_counts[course.id],
                max_similarity=self.index.max_similarity(course.id, enrolled),
                status=course.status,
            )
            probability = components.total
            if probability < self.min_probability:
                continue

            scored.append((
                probability,
                Recommendation(
                    course_id=course.id,
                    course_name=course.name,
                    course_status=course.status,
                    probability=round(probability, 2),
                    explanation=build_explanation(probability) if self.include_explanations else None,
                    similar_courses=self.similar_courses(course.id, enrolled),
                ),
            ))

        # list.sort() is stable: equal probabilities keep catalog order.
        scored.sort(key=lambda pair: -pair[0])
        return [rec for _, rec in scored[: self.max_recommendations]]

    def similar_courses(
        self,
        course_id: EntityId,
        enrolled: list[EntityId],
    ) -> list[SimilarCourse]:
        """Up to 2 enrolled courses with similarity > 0.1, most similar first."""
        similar: list[tuple[float, SimilarCourse]] = []
        for enrolled_id in enrolled:
            score = self.index.get_similarity(course_id, enrolled_id)
            enrolled_course = self._courses.get(enrolled_id)
            if score > SIMILAR_COURSE_THRESHOLD and enrolled_course is not None:
                similar.append((
                    score,
                    SimilarCourse(
                        course_id=enrolled_id,
                        course_name=enrolled_course.name,
                        similarity=round(score, 2),
                    ),
                ))
        similar.sort(key=lambda pair: -pair[0])
        return [s for _, s in similar[:MAX_SIMILAR_COURSES]]

    def current_courses(self, trainee_id: EntityId) -> list[CurrentCourse]:
        """The trainee's enrollments resolved against the catalog."""
        current: list[CurrentCourse] = []
        for enrollment in self._enrollments.get(trainee_id, ()):
            course = self._courses.get(enrollment.course_id)
            if course is None:
                continue
            current.append(
                CurrentCourse(
                    course_id=course.id,
                    course_name=course.name,
                    course_status=course.status,
                    enrollment_date=enrollment.enrollment_date,
                )
            )
        return current


def filter_and_sort_results(
    results: list[TraineeResult],
    min_probability: float = 0.0,
    max_probability: float = 1.0,
    course_status: Optional[int] = None,
    sort_by: SortField = "probability",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: Optional[int] = None,
) -> list[TraineeResult]:
    """Re-filter and re-sort the recommendations of computed trainee results.

    Args:
        results:         Trainee results from a completed run.
        min_probability: Drop recommendations below this probability.
        max_probability: Drop recommendations above this probability.
        course_status:   Keep only recommendations with this status code.
        sort_by:         ``"probability"`` or ``"course_status"``.
        sort_order:      ``"desc"`` (default) or ``"asc"``.
        limit:           Max recommendations per trainee; ``None`` keeps all.

    Returns:
        New ``TraineeResult`` objects; trainee order is unchanged.

    Raises:
        ValueError: If ``sort_by`` or ``sort_order`` is not recognised.
    """
    if sort_by not in _SORT_FIELDS:
        raise ValueError(f"sort_by must be one of {sorted(_SORT_FIELDS)}, got '{sort_by}'.")
    if sort_order not in ("asc", "desc"):
        raise ValueError(f"sort_order must be 'asc' or 'desc', got '{sort_order}'.")

    filtered_results: list[TraineeResult] = []
    for result in results:
        recs = [
            r for r in result.recommendations
            if min_probability <= r.probability <= max_probability
            and (course_status is None or r.course_status == course_status)
        ]
        recs.sort(key=lambda r: getattr(r, sort_by), reverse=sort_order == "desc")
        if limit is not None:
            recs = recs[:limit]
        filtered_results.append(result.model_copy(update={"recommendations": recs}))
    return filtered_results
