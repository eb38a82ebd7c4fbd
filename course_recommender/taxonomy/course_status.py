"""
Course lifecycle taxonomy.

Course rows carry an integer status code 1–5. Only ``CREATED`` affects
scoring (candidate bonus); the labels are used in statistics and exports.

This module has NO imports from any other ``course_recommender`` package.
"""

from enum import IntEnum


class CourseStatus(IntEnum):
    """Lifecycle stage of a course in the training centre catalog."""

    CREATED = 1
    """Course created and open for first enrollments; receives the status bonus."""

    OPENED = 2
    """Registration opened."""

    RUNNING = 3
    """Sessions in progress."""

    CLOSED = 4
    """Finished; no new enrollments."""

    ARCHIVED = 5
    """Retired from the catalog."""

    @property
    def label(self) -> str:
        return self.name.title()


def status_label(status: int) -> str:
    """Return the display label for a status code, or ``"Unknown"``."""
    try:
        return CourseStatus(status).label
    except ValueError:
        return "Unknown"
