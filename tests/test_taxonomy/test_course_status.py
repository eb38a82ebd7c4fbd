"""Tests for course_recommender/taxonomy/course_status.py."""

from __future__ import annotations

import pytest

from course_recommender.taxonomy.course_status import CourseStatus, status_label


class TestCourseStatus:
    def test_codes(self):
        assert [s.value for s in CourseStatus] == [1, 2, 3, 4, 5]

    def test_created_is_one(self):
        assert CourseStatus.CREATED == 1

    @pytest.mark.parametrize(
        "code,label",
        [(1, "Created"), (2, "Opened"), (3, "Running"), (4, "Closed"), (5, "Archived")],
    )
    def test_labels(self, code, label):
        assert status_label(code) == label

    def test_unknown_code(self):
        assert status_label(9) == "Unknown"
