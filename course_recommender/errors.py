"""
Exception hierarchy for the recommendation engine.

Every error raised deliberately by this package derives from
``RecommenderError`` so callers (CLI, HTTP transport) can catch one base.
Validation errors also derive from ``ValueError`` because they describe bad
input, matching how the rest of the code base reports bad values.
"""

from __future__ import annotations

from typing import Any, Optional


class RecommenderError(Exception):
    """Base class for all course recommender errors."""


class InvalidDatasetError(RecommenderError, ValueError):
    """A required collection is missing or malformed.

    Fatal: raised before any processing starts.
    """


class InvalidFilterError(RecommenderError, ValueError):
    """The trainee filters contain a contradictory combination."""


class ScoringFailure(RecommenderError):
    """An unexpected exception occurred while scoring a single trainee.

    Attributes:
        trainee_id:      Trainee being scored when the failure happened.
        partial_results: Trainee results completed before the failure
                         (populated by drain-mode callers; incomplete output).
    """

    def __init__(
        self,
        message: str,
        trainee_id: Any = None,
        partial_results: Optional[list] = None,
    ) -> None:
        super().__init__(message)
        self.trainee_id = trainee_id
        self.partial_results = list(partial_results or [])


class StreamAbortedError(RecommenderError):
    """The progress consumer stopped listening. Not an application error."""


class DatasetBusyError(RecommenderError):
    """A bulk reimport could not get exclusive access to the session dataset."""


class AIProviderError(RecommenderError):
    """A text-generation provider failed (transport, auth, or response shape)."""
