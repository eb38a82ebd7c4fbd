"""
Tests for course_recommender/recommendations/similarity.py.

What we test
------------
tokenize():
  - Lowercases, splits on whitespace, drops tokens shorter than 3 chars.
token_similarity():
  - Overlap over the larger set; 0 when either set is empty.
SimilarityIndex:
  - similarity(c, c) == 1.0 for every known course.
  - Symmetric pair scores; 0.0 for unknown ids.
  - Naive and inverted-index builds produce identical scores.
  - max_similarity() returns 0.0 for an empty enrolled list.
"""

from __future__ import annotations

import pytest

from course_recommender.models.dataset import Course
from course_recommender.recommendations.similarity import (
    SimilarityIndex,
    token_similarity,
    tokenize,
)


class TestTokenize:
    def test_short_tokens_dropped(self):
        assert tokenize("Intro to Python") == frozenset({"intro", "python"})

    def test_lowercased_and_deduplicated(self):
        assert tokenize("Python PYTHON python") == frozenset({"python"})

    def test_empty_name(self):
        assert tokenize("") == frozenset()


class TestTokenSimilarity:
    def test_worked_example(self):
        assert token_similarity(tokenize("Intro Python"), tokenize("Advanced Python")) == pytest.approx(0.5)

    def test_uses_larger_set_as_denominator(self):
        a = frozenset({"excel", "basics"})
        b = frozenset({"advanced", "excel", "formulas"})
        assert token_similarity(a, b) == pytest.approx(1 / 3)
        assert token_similarity(b, a) == pytest.approx(1 / 3)

    def test_empty_set_gives_zero(self):
        assert token_similarity(frozenset(), frozenset({"python"})) == 0.0


class TestSimilarityIndex:
    def test_self_similarity_is_one(self, sample_dataset):
        index = SimilarityIndex.build(sample_dataset.courses)
        for course in sample_dataset.courses:
            assert index.get_similarity(course.id, course.id) == 1.0

    def test_self_similarity_for_tokenless_name(self):
        index = SimilarityIndex.build([Course(id=1, name="IT"), Course(id=2, name="AI")])
        assert index.get_similarity(1, 1) == 1.0
        assert index.get_similarity(1, 2) == 0.0

    def test_expected_pair_scores(self, sample_dataset):
        index = SimilarityIndex.build(sample_dataset.courses)
        assert index.get_similarity(1, 2) == pytest.approx(2 / 3)
        assert index.get_similarity(2, 4) == pytest.approx(1 / 3)
        assert index.get_similarity(3, 4) == pytest.approx(1 / 3)
        assert index.get_similarity(1, 4) == 0.0
        assert index.get_similarity(5, 6) == 0.0

    def test_symmetric(self, sample_dataset):
        index = SimilarityIndex.build(sample_dataset.courses)
        ids = [c.id for c in sample_dataset.courses]
        for a in ids:
            for b in ids:
                assert index.get_similarity(a, b) == index.get_similarity(b, a)

    def test_unknown_ids_score_zero(self, sample_dataset):
        index = SimilarityIndex.build(sample_dataset.courses)
        assert index.get_similarity(1, 999) == 0.0
        assert index.get_similarity(999, 999) == 0.0
        assert 999 not in index
        assert len(index) == 6

    def test_naive_and_inverted_builds_agree(self, sample_dataset):
        naive = SimilarityIndex.build(sample_dataset.courses, inverted_index_threshold=10_000)
        inverted = SimilarityIndex.build(sample_dataset.courses, inverted_index_threshold=0)
        ids = [c.id for c in sample_dataset.courses]
        for a in ids:
            for b in ids:
                assert naive.get_similarity(a, b) == inverted.get_similarity(a, b)

    def test_builds_agree_on_generated_catalog(self):
        words = ["data", "python", "excel", "advanced", "intro", "sales", "leadership"]
        courses = [
            Course(id=i, name=" ".join(words[j % len(words)] for j in range(i, i + 1 + i % 3)))
            for i in range(40)
        ]
        naive = SimilarityIndex.build(courses, inverted_index_threshold=10_000)
        inverted = SimilarityIndex.build(courses, inverted_index_threshold=0)
        for a in range(40):
            for b in range(40):
                assert naive.get_similarity(a, b) == pytest.approx(inverted.get_similarity(a, b))

    def test_max_similarity(self, sample_dataset):
        index = SimilarityIndex.build(sample_dataset.courses)
        assert index.max_similarity(4, [1, 3]) == pytest.approx(1 / 3)
        assert index.max_similarity(4, []) == 0.0
