"""
Tests for course_recommender/cache.py.

Uses an injectable fake clock so TTL expiry is checked without sleeping.

What we test
------------
cache_key():
  - Independent of dict key order; differs by operation and params.
ResultCache:
  - Second call within TTL is a hit; compute runs once.
  - Entries expire after the per-operation TTL and are recomputed.
  - clear() drops everything.
  - Disabled cache always computes.
  - Unserialisable params degrade to direct computation.
  - Exceptions from compute propagate and nothing is stored.
"""

from __future__ import annotations

import pytest

from course_recommender.cache import ResultCache, cache_key
from course_recommender.config import CacheConfig


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock) -> ResultCache:
    config = CacheConfig(default_ttl_seconds=60.0, ttl_by_operation={"search_trainees": 10.0})
    return ResultCache(config, clock=clock)


class Counter:
    def __init__(self, value="v") -> None:
        self.calls = 0
        self.value = value

    def __call__(self):
        self.calls += 1
        return self.value


# ── Keys ──────────────────────────────────────────────────────────────────────

class TestCacheKey:
    def test_dict_order_irrelevant(self):
        assert cache_key("op", {"a": 1, "b": 2}) == cache_key("op", {"b": 2, "a": 1})

    def test_operation_and_params_distinguish(self):
        assert cache_key("op", {"a": 1}) != cache_key("other", {"a": 1})
        assert cache_key("op", {"a": 1}) != cache_key("op", {"a": 2})

    def test_is_sha256_hex(self):
        key = cache_key("statistics", {})
        assert len(key) == 64
        int(key, 16)


# ── Behaviour ─────────────────────────────────────────────────────────────────

class TestResultCache:
    def test_hit_within_ttl(self, cache):
        compute = Counter()
        assert cache.get_or_compute("statistics", {}, compute) == "v"
        assert cache.get_or_compute("statistics", {}, compute) == "v"
        assert compute.calls == 1
        assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1, "errors": 0}

    def test_different_params_are_separate_entries(self, cache):
        compute = Counter()
        cache.get_or_compute("search_trainees", {"term": "ana"}, compute)
        cache.get_or_compute("search_trainees", {"term": "bruno"}, compute)
        assert compute.calls == 2
        assert len(cache) == 2

    def test_default_ttl_expiry(self, cache, clock):
        compute = Counter()
        cache.get_or_compute("statistics", {}, compute)
        clock.now += 59.0
        cache.get_or_compute("statistics", {}, compute)
        assert compute.calls == 1
        clock.now += 1.0
        cache.get_or_compute("statistics", {}, compute)
        assert compute.calls == 2

    def test_per_operation_ttl(self, cache, clock):
        compute = Counter()
        cache.get_or_compute("search_trainees", {"term": "a"}, compute)
        clock.now += 10.0
        cache.get_or_compute("search_trainees", {"term": "a"}, compute)
        assert compute.calls == 2

    def test_clear(self, cache):
        compute = Counter()
        cache.get_or_compute("statistics", {}, compute)
        cache.clear()
        assert len(cache) == 0
        cache.get_or_compute("statistics", {}, compute)
        assert compute.calls == 2

    def test_disabled_always_computes(self, clock):
        cache = ResultCache(CacheConfig(enabled=False), clock=clock)
        compute = Counter()
        cache.get_or_compute("statistics", {}, compute)
        cache.get_or_compute("statistics", {}, compute)
        assert compute.calls == 2
        assert len(cache) == 0

    def test_unserialisable_params_degrade(self, cache):
        compute = Counter()
        assert cache.get_or_compute("statistics", {"obj": object()}, compute) == "v"
        assert cache.errors == 1
        assert len(cache) == 0

    def test_compute_exception_propagates(self, cache):
        def boom():
            raise RuntimeError("query failed")

        with pytest.raises(RuntimeError, match="query failed"):
            cache.get_or_compute("statistics", {}, boom)
        assert len(cache) == 0

    def test_store_failure_degrades(self, cache, monkeypatch):
        def failing_store(key, value, expires_at):
            raise MemoryError("full")

        monkeypatch.setattr(cache, "_store", failing_store)
        compute = Counter()
        assert cache.get_or_compute("statistics", {}, compute) == "v"
        assert cache.errors == 1

    def test_ttl_for_falls_back_to_default(self):
        config = CacheConfig(default_ttl_seconds=42.0, ttl_by_operation={})
        assert config.ttl_for("anything") == 42.0
