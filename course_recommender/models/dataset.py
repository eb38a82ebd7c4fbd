"""
Dataset models: courses, trainees and enrollments.

``Dataset`` is the unit the engine consumes. It is immutable: sanitization
and reimport produce new ``Dataset`` instances instead of editing one in place.

``Dataset.from_payload()`` is the validating entry point for raw dicts coming
from an ingestion collaborator; a missing collection raises
``InvalidDatasetError`` before anything else happens.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, ValidationError, field_validator

from course_recommender.errors import InvalidDatasetError
from course_recommender.models.common import EntityId, WireModel

REQUIRED_COLLECTIONS = ("courses", "trainees", "enrollments")


class Course(WireModel):
    """A catalog course.

    Attributes:
        id:     Course identifier (``CourseBasicDataId`` in spreadsheet exports).
        name:   Display name; tokenized for similarity.
        status: Lifecycle code 1–5 (see ``CourseStatus``).
    """

    id: EntityId
    name: str
    status: int = Field(default=1, ge=1, le=5)


class Trainee(WireModel):
    """A trainee (training centre member)."""

    id: EntityId
    name: str = ""
    email: str = ""
    phone: str = ""

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> str:
        # Spreadsheet cells arrive as numbers (phones) or None.
        return "" if v is None else str(v)

    @property
    def display_name(self) -> str:
        return self.name or f"Trainee {self.id}"


class Enrollment(WireModel):
    """A trainee's enrollment in a course."""

    trainee_id: EntityId
    course_id: EntityId
    enrollment_date: Optional[str] = None


class Dataset(WireModel):
    """The complete input of a recommendation run."""

    courses: list[Course]
    trainees: list[Trainee]
    enrollments: list[Enrollment]

    @classmethod
    def from_payload(cls, payload: Any) -> "Dataset":
        """Validate a raw ``{courses, trainees, enrollments}`` mapping.

        Args:
            payload: Mapping with the three collections (camelCase or snake_case
                item keys).

        Returns:
            A validated ``Dataset``.

        Raises:
            InvalidDatasetError: If the payload is not a mapping, a collection
                is missing/None, or any record fails validation.
        """
        if not isinstance(payload, dict):
            raise InvalidDatasetError(
                f"Dataset payload must be a mapping, got {type(payload).__name__}."
            )
        missing = [key for key in REQUIRED_COLLECTIONS if payload.get(key) is None]
        if missing:
            raise InvalidDatasetError(
                f"Dataset is missing required collection(s): {', '.join(missing)}."
            )
        try:
            return cls.model_validate(
                {key: payload[key] for key in REQUIRED_COLLECTIONS}
            )
        except ValidationError as exc:
            raise InvalidDatasetError(f"Dataset failed validation: {exc}") from exc

    def course_ids(self) -> set[EntityId]:
        return {c.id for c in self.courses}
