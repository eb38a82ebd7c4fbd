"""
Tests for course_recommender/recommendations/scorer.py.

What we test
------------
compute_probability():
  - Worked example: no enrollments, similarity 0.5, status 3 → 0.35.
  - Popularity grows 0.01 per enrollment and caps at 0.3.
  - Status bonus applies only to CREATED (1).
  - Total is clamped to [0, 1] for any input.

build_explanation():
  - Embeds the half-up rounded percentage.

round_half_up():
  - Rounds .5 up where built-in round() would round to even.
"""

from __future__ import annotations

import itertools

import pytest

from course_recommender.recommendations.scorer import (
    POPULARITY_CAP,
    build_explanation,
    compute_probability,
    round_half_up,
)


class TestComputeProbability:
    def test_worked_example_scores_035(self):
        c = compute_probability(enrollment_count=0, max_similarity=0.5, status=3)
        assert c.popularity == pytest.approx(0.0)
        assert c.similarity == pytest.approx(0.25)
        assert c.status_bonus == 0.0
        assert c.total == pytest.approx(0.35)

    def test_popularity_is_count_over_100(self):
        c = compute_probability(enrollment_count=12, max_similarity=0.0, status=2)
        assert c.popularity == pytest.approx(0.12)

    def test_popularity_caps_at_030(self):
        c = compute_probability(enrollment_count=500, max_similarity=0.0, status=2)
        assert c.popularity == pytest.approx(POPULARITY_CAP)

    def test_status_bonus_only_for_created(self):
        assert compute_probability(0, 0.0, 1).status_bonus == pytest.approx(0.2)
        for status in (2, 3, 4, 5):
            assert compute_probability(0, 0.0, status).status_bonus == 0.0

    def test_maximum_inputs_reach_exactly_one(self):
        c = compute_probability(enrollment_count=1000, max_similarity=1.0, status=1)
        # 0.1 + 0.3 + 0.5 + 0.2 = 1.1 → clamped
        assert c.total == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "count,similarity,status",
        list(itertools.product([0, 1, 29, 30, 10_000], [0.0, 0.33, 1.0, 7.0], [1, 3])),
    )
    def test_total_always_within_unit_interval(self, count, similarity, status):
        total = compute_probability(count, similarity, status).total
        assert 0.0 <= total <= 1.0


class TestBuildExplanation:
    def test_contains_rounded_percentage(self):
        assert build_explanation(0.35) == (
            "35% match based on enrollment patterns and course similarity"
        )

    def test_half_percent_rounds_up(self):
        # 0.125 is exact in binary: 12.5% → 13%
        assert build_explanation(0.125).startswith("13%")
        assert build_explanation(0.625).startswith("63%")


class TestRoundHalfUp:
    def test_rounds_half_up(self):
        assert round_half_up(34.5) == 35
        assert round_half_up(52.5) == 53
        assert round(52.5) == 52  # the behaviour round_half_up avoids

    def test_regular_values(self):
        assert round_half_up(11.67) == 12
        assert round_half_up(11.4) == 11
        assert round_half_up(0.0) == 0
