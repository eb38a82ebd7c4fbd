"""
Generation request and trainee filter models.

Field-level constraints (non-negative counts, probability range, positive
sizes) are enforced here by pydantic. Cross-field contradictions such as
``min_enrollments > max_enrollments`` are checked by
``recommendations.filters.validate_filters()`` so they surface as
``InvalidFilterError`` before any scoring begins.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field

from course_recommender.models.common import EntityId, WireModel


class TraineeFilters(WireModel):
    """Optional predicates that select the trainee working set.

    Attributes:
        name_search:        Case-insensitive substring of the trainee name.
        email_search:       Case-insensitive substring of the email.
        phone_search:       Substring of the phone number.
        has_enrollments:    True → only trainees with ≥1 enrollment;
                            False → only trainees with none.
        min_enrollments:    Inclusive lower bound on enrollment count.
        max_enrollments:    Inclusive upper bound on enrollment count.
        enrolled_in_course: Keep trainees enrolled in any of these course ids.
        random_sample:      Draw a uniform sample after the predicates.
        random_sample_size: Sample size when ``random_sample`` is set.
        random_seed:        Seed for reproducible sampling.
        max_results:        Cap applied only when ``random_sample`` is off.
    """

    name_search: Optional[str] = None
    email_search: Optional[str] = None
    phone_search: Optional[str] = None
    has_enrollments: Optional[bool] = None
    min_enrollments: Optional[int] = Field(default=None, ge=0)
    max_enrollments: Optional[int] = Field(default=None, ge=0)
    enrolled_in_course: list[EntityId] = Field(default_factory=list)
    random_sample: bool = False
    random_sample_size: int = Field(default=10, ge=1)
    random_seed: Optional[int] = None
    max_results: Optional[int] = Field(default=None, ge=1)


class GenerationRequest(WireModel):
    """Parameters of one recommendation run.

    Use ``GenerationRequest.from_config(config.engine, ...)`` to take defaults
    from configuration.
    """

    max_recommendations: int = Field(default=5, ge=1)
    min_probability: float = Field(default=0.1, ge=0.0, le=1.0)
    max_trainees: int = Field(default=50, ge=1)
    chunk_size: int = Field(default=20, ge=1)
    include_explanations: bool = True
    use_ai: bool = False
    trainee_filters: TraineeFilters = Field(default_factory=TraineeFilters)

    @classmethod
    def from_config(cls, engine_config, **overrides) -> "GenerationRequest":
        """Build a request from ``EngineConfig`` defaults plus explicit overrides.

        ``None`` overrides are ignored so CLI options can be passed through as-is.
        """
        values = {
            "max_recommendations": engine_config.max_recommendations,
            "min_probability": engine_config.min_probability,
            "max_trainees": engine_config.max_trainees,
            "chunk_size": engine_config.chunk_size,
            "include_explanations": engine_config.include_explanations,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
