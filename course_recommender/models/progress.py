"""
Progress events emitted by the chunked executor.

Events are transient: they are yielded to the consumer (CLI, SSE transport)
and never persisted. The stage sequence of a successful run is::

    initializing → course_analysis → chunking_setup
      → {chunk_start → {trainee_start → trainee_complete}* → chunk_complete}*
      → complete

A run that fails ends with a single ``error`` event instead of ``complete``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import Field

from course_recommender.models.common import EntityId, WireModel
from course_recommender.models.recommendation import GenerationResult, TraineeResult


class ProgressStage(StrEnum):
    INITIALIZING = "initializing"
    COURSE_ANALYSIS = "course_analysis"
    CHUNKING_SETUP = "chunking_setup"
    CHUNK_START = "chunk_start"
    TRAINEE_START = "trainee_start"
    TRAINEE_COMPLETE = "trainee_complete"
    CHUNK_COMPLETE = "chunk_complete"
    COMPLETE = "complete"
    ERROR = "error"


TERMINAL_STAGES = frozenset({ProgressStage.COMPLETE, ProgressStage.ERROR})


class ProgressEvent(WireModel):
    """One progress notification.

    Attributes:
        stage:              Pipeline stage that produced the event.
        message:            Human-readable status line.
        progress:           Percentage 0–100.
        processed_trainees: Trainees fully scored so far.
        total_trainees:     Size of the working set.
        trainee_id:         Trainee being scored (trainee and error events).
        trainee_result:     Set on ``trainee_complete``.
        result:             Set on ``complete``.
        error:              Set on ``error``.
    """

    stage: ProgressStage
    message: str
    progress: int = Field(ge=0, le=100)
    processed_trainees: int = 0
    total_trainees: int = 0
    total_courses: Optional[int] = None
    current_chunk: Optional[int] = None
    total_chunks: Optional[int] = None
    chunk_size: Optional[int] = None
    trainee_id: Optional[EntityId] = None
    trainee_result: Optional[TraineeResult] = None
    result: Optional[GenerationResult] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES
