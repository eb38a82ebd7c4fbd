"""
Recommendation output models.

``TraineeResult`` is what a ``trainee_complete`` progress event carries and
what the final ``GenerationResult.data`` list is made of. All models are
frozen; enrichment produces copies via ``model_copy(update=...)``.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from course_recommender.models.common import EntityId, WireModel


class SimilarCourse(WireModel):
    """An enrolled course that explains a recommendation."""

    course_id: EntityId
    course_name: str
    similarity: float = Field(ge=0.0, le=1.0)


class Recommendation(WireModel):
    """A candidate course recommended to a trainee.

    Attributes:
        probability:     Canonical probability, rounded to 2 decimals.
        explanation:     Templated text, or ``None`` when explanations are off.
        similar_courses: Up to 2 enrolled courses with similarity > 0.1.
        ai_insight:      Optional provider-generated text (enrichment only).
    """

    course_id: EntityId
    course_name: str
    course_status: int
    probability: float = Field(ge=0.0, le=1.0)
    explanation: Optional[str] = None
    similar_courses: list[SimilarCourse] = Field(default_factory=list)
    ai_insight: Optional[str] = None


class CurrentCourse(WireModel):
    """A course the trainee is already enrolled in."""

    course_id: EntityId
    course_name: str
    course_status: int
    enrollment_date: Optional[str] = None


class TraineeResult(WireModel):
    """Ranked recommendations for one trainee."""

    trainee_id: EntityId
    trainee_name: str
    trainee_email: str = ""
    trainee_phone: str = ""
    current_courses: list[CurrentCourse] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)

    def enrolled_course_ids(self) -> set[EntityId]:
        return {c.course_id for c in self.current_courses}


class GenerationResult(WireModel):
    """Aggregated output of a completed run."""

    success: bool = True
    total_trainees: int
    total_courses: int
    recommendations_generated: int
    data: list[TraineeResult] = Field(default_factory=list)
    chunks_processed: int = 0
    chunk_size: int = 0
