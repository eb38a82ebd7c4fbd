"""
Chunked recommendation executor with a progress event stream.

Pipeline per request
--------------------
1. initializing     (0%)   — validate request, start the run.
2. course_analysis  (5%)   — sanitize enrollments, build the similarity index.
3. chunking_setup   (15%)  — apply trainee filters, cap at max_trainees, split
                             into chunks of ``chunk_size``.
4. per chunk        (20–90%)
     chunk_start → {trainee_start → trainee_complete}* → chunk_complete
5. complete         (100%) — carries the full ``GenerationResult``.

Chunk and trainee events report ``20 + round(processed / total * 70)``.

Failure handling
----------------
- Dataset / filter validation runs eagerly in ``stream()``, so bad input
  raises before the first event is produced.
- Any exception while scoring a trainee aborts the run (fail-fast): one
  ``error`` event is emitted and the stream ends. Already emitted
  ``trainee_complete`` events remain valid partial output.
- Cancellation is cooperative: ``is_listening()`` is checked before every
  chunk and every trainee; closing the generator has the same effect.

Consumers:
    for event in executor.stream(dataset, request):   # incremental
        ...
    result = generate_recommendations(dataset, request)  # drain mode
    async for event in aiter_events(executor.stream(...)):  # async transport
        ...
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Iterable, Iterator, Optional

from course_recommender.errors import (
    InvalidDatasetError,
    RecommenderError,
    ScoringFailure,
    StreamAbortedError,
)
from course_recommender.models.dataset import Dataset, Trainee
from course_recommender.models.progress import ProgressEvent, ProgressStage
from course_recommender.models.recommendation import GenerationResult, TraineeResult
from course_recommender.models.request import GenerationRequest
from course_recommender.recommendations.enrichment import RecommendationEnricher
from course_recommender.recommendations.filters import apply_trainee_filters, validate_filters
from course_recommender.recommendations.ranker import TraineeScorer
from course_recommender.recommendations.sanitizer import sanitize_dataset
from course_recommender.recommendations.scorer import round_half_up
from course_recommender.recommendations.similarity import (
    DEFAULT_INVERTED_INDEX_THRESHOLD,
    SimilarityIndex,
)

logger = logging.getLogger(__name__)

ListeningCheck = Callable[[], bool]

_EXHAUSTED = object()

PROGRESS_INITIALIZING = 0
PROGRESS_COURSE_ANALYSIS = 5
PROGRESS_CHUNKING_SETUP = 15
PROGRESS_CHUNKS_START = 20
PROGRESS_CHUNKS_SPAN = 70
PROGRESS_COMPLETE = 100


def chunk_progress(processed: int, total: int) -> int:
    """Progress percentage for chunk and trainee events."""
    if total <= 0:
        return PROGRESS_CHUNKS_START + PROGRESS_CHUNKS_SPAN
    return PROGRESS_CHUNKS_START + round_half_up(processed / total * PROGRESS_CHUNKS_SPAN)


def split_into_chunks(trainees: list[Trainee], chunk_size: int) -> list[list[Trainee]]:
    return [trainees[i : i + chunk_size] for i in range(0, len(trainees), chunk_size)]


class ChunkedExecutor:
    """Runs one recommendation request as a sequential generator of events.

    Args:
        inverted_index_threshold: Catalog size above which the similarity
                                  index uses token postings.
        enricher:                 Optional AI enricher, applied only when the
                                  request sets ``use_ai``.
    """

    def __init__(
        self,
        inverted_index_threshold: int = DEFAULT_INVERTED_INDEX_THRESHOLD,
        enricher: Optional[RecommendationEnricher] = None,
    ) -> None:
        self.inverted_index_threshold = inverted_index_threshold
        self.enricher = enricher

    def stream(
        self,
        dataset: Optional[Dataset],
        request: GenerationRequest,
        is_listening: Optional[ListeningCheck] = None,
    ) -> Iterator[ProgressEvent]:
        """Validate inputs, then return the event generator.

        Raises:
            InvalidDatasetError: If no dataset is given.
            InvalidFilterError:  If the trainee filters are contradictory.
        """
        if dataset is None:
            raise InvalidDatasetError("No dataset loaded; import courses, trainees and enrollments first.")
        validate_filters(request.trainee_filters)
        return self._run(dataset, request, is_listening or (lambda: True))

    # ── Internals ─────────────────────────────────────────────────────────────

    def _run(
        self,
        dataset: Dataset,
        request: GenerationRequest,
        is_listening: ListeningCheck,
    ) -> Iterator[ProgressEvent]:
        try:
            yield from self._events(dataset, request, is_listening)
        except StreamAbortedError:
            logger.info("Progress consumer stopped listening; recommendation run aborted.")

    def _events(
        self,
        dataset: Dataset,
        request: GenerationRequest,
        is_listening: ListeningCheck,
    ) -> Iterator[ProgressEvent]:
        yield ProgressEvent(
            stage=ProgressStage.INITIALIZING,
            message="Initializing chunked recommendation engine...",
            progress=PROGRESS_INITIALIZING,
        )

        sanitized = sanitize_dataset(dataset)
        total_courses = len(sanitized.courses)
        yield ProgressEvent(
            stage=ProgressStage.COURSE_ANALYSIS,
            message=f"Analyzing {total_courses} courses for similarity patterns...",
            progress=PROGRESS_COURSE_ANALYSIS,
            total_courses=total_courses,
        )
        index = SimilarityIndex.build(
            sanitized.courses,
            inverted_index_threshold=self.inverted_index_threshold,
        )
        scorer = TraineeScorer.from_request(sanitized, index, request)

        working_set = apply_trainee_filters(
            sanitized.trainees, sanitized.enrollments, request.trainee_filters
        )[: request.max_trainees]
        total = len(working_set)
        chunks = split_into_chunks(working_set, request.chunk_size)
        yield ProgressEvent(
            stage=ProgressStage.CHUNKING_SETUP,
            message=f"Setting up {len(chunks)} processing batches...",
            progress=PROGRESS_CHUNKING_SETUP,
            total_trainees=total,
            total_courses=total_courses,
            total_chunks=len(chunks),
            chunk_size=request.chunk_size,
        )
        logger.info(
            "Recommendation run: %d trainees in %d chunks of %d, %d courses",
            total, len(chunks), request.chunk_size, total_courses,
            extra={"trainees": total, "chunks": len(chunks)},
        )

        results: list[TraineeResult] = []
        for chunk_number, chunk in enumerate(chunks, start=1):
            self._check_listening(is_listening)
            yield ProgressEvent(
                stage=ProgressStage.CHUNK_START,
                message=f"Starting batch {chunk_number}/{len(chunks)} ({len(chunk)} trainees)",
                progress=chunk_progress(len(results), total),
                processed_trainees=len(results),
                total_trainees=total,
                current_chunk=chunk_number,
                total_chunks=len(chunks),
                chunk_size=len(chunk),
            )

            for trainee in chunk:
                self._check_listening(is_listening)
                yield ProgressEvent(
                    stage=ProgressStage.TRAINEE_START,
                    message=f"Analyzing {trainee.display_name}...",
                    progress=chunk_progress(len(results), total),
                    processed_trainees=len(results),
                    total_trainees=total,
                    current_chunk=chunk_number,
                    total_chunks=len(chunks),
                    trainee_id=trainee.id,
                )

                try:
                    result = self._score(scorer, trainee, request)
                except Exception as exc:
                    failure = ScoringFailure(
                        f"Scoring failed for trainee {trainee.id}: {exc}",
                        trainee_id=trainee.id,
                        partial_results=results,
                    )
                    logger.exception("%s", failure)
                    yield ProgressEvent(
                        stage=ProgressStage.ERROR,
                        message=f"Error: {failure}",
                        progress=chunk_progress(len(results), total),
                        processed_trainees=len(results),
                        total_trainees=total,
                        current_chunk=chunk_number,
                        total_chunks=len(chunks),
                        trainee_id=trainee.id,
                        error=str(failure),
                    )
                    return

                results.append(result)
                yield ProgressEvent(
                    stage=ProgressStage.TRAINEE_COMPLETE,
                    message=(
                        f"{result.trainee_name}: "
                        f"{len(result.recommendations)} recommendations found"
                    ),
                    progress=chunk_progress(len(results), total),
                    processed_trainees=len(results),
                    total_trainees=total,
                    current_chunk=chunk_number,
                    total_chunks=len(chunks),
                    trainee_id=trainee.id,
                    trainee_result=result,
                )

            yield ProgressEvent(
                stage=ProgressStage.CHUNK_COMPLETE,
                message=f"Batch {chunk_number}/{len(chunks)} completed ({len(chunk)} trainees processed)",
                progress=chunk_progress(len(results), total),
                processed_trainees=len(results),
                total_trainees=total,
                current_chunk=chunk_number,
                total_chunks=len(chunks),
                chunk_size=len(chunk),
            )

        generated = sum(len(r.recommendations) for r in results)
        logger.info(
            "Recommendation run complete: %d trainees, %d recommendations",
            len(results), generated,
            extra={"trainees": len(results), "recommendations": generated},
        )
        yield ProgressEvent(
            stage=ProgressStage.COMPLETE,
            message=f"Analysis completed! Generated recommendations for {len(results)} trainees",
            progress=PROGRESS_COMPLETE,
            processed_trainees=len(results),
            total_trainees=total,
            total_courses=total_courses,
            total_chunks=len(chunks),
            chunk_size=request.chunk_size,
            result=GenerationResult(
                success=True,
                total_trainees=len(results),
                total_courses=total_courses,
                recommendations_generated=generated,
                data=results,
                chunks_processed=len(chunks),
                chunk_size=request.chunk_size,
            ),
        )

    def _score(
        self,
        scorer: TraineeScorer,
        trainee: Trainee,
        request: GenerationRequest,
    ) -> TraineeResult:
        result = scorer.score_trainee(trainee)
        if request.use_ai and self.enricher is not None:
            result = self.enricher.enrich(result)
        return result

    @staticmethod
    def _check_listening(is_listening: ListeningCheck) -> None:
        if not is_listening():
            raise StreamAbortedError("Progress consumer is no longer listening.")


# ── Consumers ─────────────────────────────────────────────────────────────────

def generate_recommendations(
    dataset: Optional[Dataset],
    request: GenerationRequest,
    executor: Optional[ChunkedExecutor] = None,
    on_event: Optional[Callable[[ProgressEvent], None]] = None,
) -> GenerationResult:
    """Drain the event stream and return the final result.

    Args:
        dataset:  Dataset to score.
        request:  Generation parameters.
        executor: Executor to use; defaults to ``ChunkedExecutor()``.
        on_event: Optional callback invoked for every event.

    Raises:
        InvalidDatasetError / InvalidFilterError: On bad input (before scoring).
        ScoringFailure: If the run ends with an error event; carries the
            trainee results completed before the failure.
    """
    executor = executor or ChunkedExecutor()
    return drain_events(executor.stream(dataset, request), on_event)


def drain_events(
    events: Iterable[ProgressEvent],
    on_event: Optional[Callable[[ProgressEvent], None]] = None,
) -> GenerationResult:
    """Consume an event stream up to its terminal event.

    Raises:
        ScoringFailure: On an ``error`` event, with the results completed so far.
        RecommenderError: If the stream ends without ``complete`` or ``error``.
    """
    partial: list[TraineeResult] = []
    iterator = iter(events)
    try:
        for event in iterator:
            if on_event is not None:
                on_event(event)
            if event.stage == ProgressStage.TRAINEE_COMPLETE and event.trainee_result is not None:
                partial.append(event.trainee_result)
            elif event.stage == ProgressStage.COMPLETE and event.result is not None:
                return event.result
            elif event.stage == ProgressStage.ERROR:
                raise ScoringFailure(
                    event.error or event.message,
                    trainee_id=event.trainee_id,
                    partial_results=partial,
                )
    finally:
        close = getattr(iterator, "close", None)
        if close is not None:
            close()

    raise RecommenderError("Recommendation stream ended without a terminal event.")


async def aiter_events(events: Iterable[ProgressEvent]) -> AsyncIterator[ProgressEvent]:
    """Adapt an event stream for async transports.

    Each step of the stream (scoring, lock waits, provider calls) runs in a
    worker thread via ``asyncio.to_thread`` so the event loop keeps serving
    other tasks. Leaving the loop early closes the stream.
    """
    iterator = iter(events)
    in_worker = False
    try:
        while True:
            in_worker = True
            event = await asyncio.to_thread(next, iterator, _EXHAUSTED)
            in_worker = False
            if event is _EXHAUSTED:
                return
            yield event
    finally:
        # A cancelled step may still be running in its thread; it cannot be closed.
        close = getattr(iterator, "close", None)
        if close is not None and not in_worker:
            close()
