"""
Dataset sessions: one loaded dataset plus its cache and lock.

A ``DatasetSession`` owns
  - the raw dataset (kept for integrity reports),
  - its sanitized copy (used by every query),
  - a ``ResultCache`` for aggregate queries,
  - a readers/writer lock.

Recommendation streams and queries hold the read lock while they run. A bulk
reimport (``load()``) takes the write lock: it waits for in-flight readers,
clears the cache and swaps the dataset. If readers do not drain within
``SessionConfig.reload_timeout_seconds`` it raises ``DatasetBusyError``.

``SessionRegistry`` maps session ids to sessions so a transport can keep one
dataset per user or upload.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from course_recommender.ai.providers import AIProvider
from course_recommender.cache import ResultCache
from course_recommender.config import AppConfig
from course_recommender.errors import DatasetBusyError, InvalidDatasetError
from course_recommender.models.common import EntityId
from course_recommender.models.dataset import Dataset
from course_recommender.models.progress import ProgressEvent
from course_recommender.models.request import GenerationRequest, TraineeFilters
from course_recommender.models.statistics import (
    DatasetStatistics,
    IntegrityReport,
    TraineePage,
    TraineeSummary,
)
from course_recommender.queries import (
    compute_statistics,
    find_prospects,
    list_filtered_trainees,
    search_trainees,
)
from course_recommender.recommendations.enrichment import RecommendationEnricher
from course_recommender.recommendations.executor import ChunkedExecutor, ListeningCheck
from course_recommender.recommendations.sanitizer import integrity_report, sanitize_dataset

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer; writers wait for readers to drain."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False

    @property
    def readers(self) -> int:
        return self._readers

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            acquired = self._cond.wait_for(
                lambda: not self._writer and self._readers == 0,
                timeout=timeout,
            )
            if acquired:
                self._writer = True
            return acquired

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()


class LockedEventStream:
    """Event iterator that owns a read lock until it is exhausted or closed.

    ``release`` is called exactly once: on ``StopIteration``, on any error
    raised by the wrapped stream, on ``close()``, or when the stream is
    garbage collected unconsumed.
    """

    def __init__(self, events: Iterator[ProgressEvent], release: Callable[[], None]) -> None:
        self._events = events
        self._release: Optional[Callable[[], None]] = release

    def __iter__(self) -> "LockedEventStream":
        return self

    def __next__(self) -> ProgressEvent:
        if self._release is None:
            raise StopIteration
        try:
            return next(self._events)
        except BaseException:
            self.close()
            raise

    @property
    def closed(self) -> bool:
        return self._release is None

    def close(self) -> None:
        release, self._release = self._release, None
        if release is None:
            return
        try:
            close = getattr(self._events, "close", None)
            if close is not None:
                close()
        finally:
            release()

    def __del__(self) -> None:
        self.close()


class DatasetSession:
    """A loaded dataset with cached queries and guarded reimport.

    Usage::

        session = DatasetSession(config)
        session.load(load_dataset(path))
        for event in session.stream_recommendations(request):
            ...
        session.statistics()
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        session_id: str = "default",
        ai_provider: Optional[AIProvider] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.session_id = session_id
        self.cache = ResultCache(self.config.cache)
        self._lock = ReadWriteLock()
        self._raw: Optional[Dataset] = None
        self._dataset: Optional[Dataset] = None

        enricher = None
        if ai_provider is not None:
            enricher = RecommendationEnricher(
                ai_provider, max_enriched=self.config.ai.max_enriched_per_trainee
            )
        self.executor = ChunkedExecutor(
            inverted_index_threshold=self.config.engine.inverted_index_threshold,
            enricher=enricher,
        )

    @property
    def is_loaded(self) -> bool:
        return self._dataset is not None

    @property
    def active_readers(self) -> int:
        return self._lock.readers

    def load(self, dataset: Dataset, timeout: Optional[float] = None) -> None:
        """Bulk reimport: wait for readers, clear the cache, swap the dataset.

        Raises:
            DatasetBusyError: If readers are still active after ``timeout``
                (default ``SessionConfig.reload_timeout_seconds``).
        """
        wait = self.config.session.reload_timeout_seconds if timeout is None else timeout
        if not self._lock.acquire_write(timeout=wait):
            raise DatasetBusyError(
                f"Session '{self.session_id}' is busy: {self._lock.readers} reader(s) "
                f"still active after {wait:.1f}s."
            )
        try:
            self.cache.clear()
            self._raw = dataset
            self._dataset = sanitize_dataset(dataset)
        finally:
            self._lock.release_write()
        logger.info(
            "Session %s loaded: %d courses, %d trainees, %d enrollments",
            self.session_id,
            len(dataset.courses), len(dataset.trainees), len(dataset.enrollments),
        )

    def require_dataset(self) -> Dataset:
        """Return the sanitized dataset.

        Raises:
            InvalidDatasetError: If nothing has been loaded yet.
        """
        if self._dataset is None:
            raise InvalidDatasetError(
                f"Session '{self.session_id}' has no dataset loaded."
            )
        return self._dataset

    # ── Recommendation runs ────────────────────────────────────────────────────

    def stream_recommendations(
        self,
        request: GenerationRequest,
        is_listening: Optional[ListeningCheck] = None,
    ) -> Iterator[ProgressEvent]:
        """Stream events while holding the read lock.

        The lock is taken before the dataset is read and released when the
        stream is exhausted, fails or is closed, so a reimport can never
        slip in between creating the stream and consuming it.

        Raises:
            InvalidDatasetError / InvalidFilterError: Before any event.
        """
        self._lock.acquire_read()
        try:
            events = self.executor.stream(self._raw, request, is_listening)
        except BaseException:
            self._lock.release_read()
            raise
        return LockedEventStream(events, self._lock.release_read)

    # ── Cached queries ─────────────────────────────────────────────────────────

    def statistics(self) -> DatasetStatistics:
        return self._cached_query("statistics", {}, compute_statistics)

    def search_trainees(
        self,
        term: str,
        limit: int = 50,
        include_enrollments: bool = False,
    ) -> list[TraineeSummary]:
        return self._cached_query(
            "search_trainees",
            {"term": term, "limit": limit, "include_enrollments": include_enrollments},
            lambda ds: search_trainees(ds, term, limit, include_enrollments),
        )

    def filtered_trainees(
        self,
        filters: Optional[TraineeFilters] = None,
        page: int = 1,
        page_size: int = 50,
        sort_by: str = "id",
        sort_order: str = "asc",
    ) -> TraineePage:
        filters = filters or TraineeFilters()

        def compute(ds: Dataset) -> TraineePage:
            return list_filtered_trainees(ds, filters, page, page_size, sort_by, sort_order)

        if filters.random_sample and filters.random_seed is None:
            # Unseeded samples must differ between calls.
            with self._lock.read_locked():
                return compute(self.require_dataset())
        return self._cached_query(
            "filtered_trainees",
            {
                "filters": filters.model_dump(mode="json"),
                "page": page,
                "page_size": page_size,
                "sort_by": sort_by,
                "sort_order": sort_order,
            },
            compute,
        )

    def integrity_report(self) -> IntegrityReport:
        with self._lock.read_locked():
            if self._raw is None:
                raise InvalidDatasetError(f"Session '{self.session_id}' has no dataset loaded.")
            raw = self._raw
            return self.cache.get_or_compute(
                "integrity_report", {}, lambda: integrity_report(raw)
            )

    def prospects_for_course(self, course_id: EntityId) -> list[TraineeSummary]:
        return self._cached_query(
            "prospects",
            {"course_id": course_id},
            lambda ds: find_prospects(ds, course_id),
        )

    def _cached_query(self, operation: str, params: dict[str, Any], compute) -> Any:
        with self._lock.read_locked():
            dataset = self.require_dataset()
            return self.cache.get_or_compute(operation, params, lambda: compute(dataset))


class SessionRegistry:
    """Session id → ``DatasetSession``, created on first use."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        ai_provider: Optional[AIProvider] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.ai_provider = ai_provider
        self._sessions: dict[str, DatasetSession] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> DatasetSession:
        with self._guard:
            session = self._sessions.get(session_id)
            if session is None:
                session = DatasetSession(self.config, session_id, self.ai_provider)
                self._sessions[session_id] = session
                logger.debug("Created session %s", session_id)
            return session

    def drop(self, session_id: str) -> bool:
        with self._guard:
            return self._sessions.pop(session_id, None) is not None
