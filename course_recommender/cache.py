"""
Time-bounded memo of query results.

Key   = SHA-256 of the canonical JSON of ``[operation, params]``.
TTL   = ``CacheConfig.ttl_for(operation)``; entries expire lazily on read.

The cache takes no lock. Two callers missing on the same key at the same
time both compute and the last write wins; values are immutable results, so
the only cost is duplicate work.

Anything that goes wrong inside the cache layer itself (parameters that do
not serialise, a failing store) is logged and the value is computed
directly. Exceptions raised by ``compute`` propagate unchanged.

Usage::

    cache = ResultCache(config.cache)
    stats = cache.get_or_compute("statistics", {}, lambda: compute_statistics(ds))
    cache.clear()   # after a bulk reimport
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from course_recommender.config import CacheConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float


def cache_key(operation: str, params: Any) -> str:
    """Stable key for ``(operation, params)``; dict key order does not matter."""
    canonical = json.dumps([operation, params], sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResultCache:
    """Per-session TTL cache for statistics, search and listing queries.

    Attributes:
        hits:   Lookups served from the cache.
        misses: Lookups that ran ``compute``.
        errors: Cache-layer failures that degraded to direct computation.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self.errors = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(self, operation: str, params: Any, compute: Callable[[], T]) -> T:
        """Return the cached value for ``(operation, params)`` or compute and store it."""
        if not self.config.enabled:
            return compute()

        try:
            key = cache_key(operation, params)
        except (TypeError, ValueError) as exc:
            self.errors += 1
            logger.warning("Cache key failed for %s, computing directly: %s", operation, exc)
            return compute()

        entry = self._entries.get(key)
        now = self._clock()
        if entry is not None:
            if now < entry.expires_at:
                self.hits += 1
                logger.debug("Cache hit: %s", operation)
                return entry.value
            self._entries.pop(key, None)

        self.misses += 1
        value = compute()
        try:
            self._store(key, value, now + self.config.ttl_for(operation))
        except Exception as exc:
            self.errors += 1
            logger.warning("Cache store failed for %s: %s", operation, exc)
        return value

    def clear(self) -> None:
        """Drop every entry. Called on dataset reimport."""
        count = len(self._entries)
        self._entries.clear()
        logger.info("Cache cleared (%d entries)", count)

    def stats(self) -> dict[str, int]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
        }

    def _store(self, key: str, value: Any, expires_at: float) -> None:
        self._entries[key] = CacheEntry(value=value, expires_at=expires_at)
