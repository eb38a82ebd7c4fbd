"""
Time helpers shared by pipeline stages and query results.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def elapsed_seconds(started_at: datetime, finished_at: datetime | None = None) -> float:
    """Seconds between ``started_at`` and ``finished_at`` (default: now), rounded to ms."""
    end = finished_at or utcnow()
    return round((end - started_at).total_seconds(), 3)
