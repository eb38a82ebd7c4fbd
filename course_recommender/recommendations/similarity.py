"""
Course-name similarity index.

Similarity between two courses is the token overlap of their names::

    tokens(name)     = {w for w in name.lower().split() if len(w) > 2}
    similarity(a, b) = |tokens(a) ∩ tokens(b)| / max(|tokens(a)|, |tokens(b)|)

with ``similarity(c, c) = 1.0`` for every known course and 0 whenever either
token set is empty. The formula is symmetric, so the index stores each pair
once per direction and never needs reconciling.

Build strategies
----------------
naive    : compare every pair, O(C² · avg_tokens). Fine for a few hundred courses.
inverted : token → course ids postings; only courses sharing a token are
           compared. Used automatically above ``inverted_index_threshold``.

Both strategies produce identical scores; zero scores are not stored.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from course_recommender.models.common import EntityId
from course_recommender.models.dataset import Course

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3
DEFAULT_INVERTED_INDEX_THRESHOLD = 300


def tokenize(name: str) -> frozenset[str]:
    """Lowercase, split on whitespace, keep tokens longer than 2 characters."""
    return frozenset(w for w in name.lower().split() if len(w) >= MIN_TOKEN_LENGTH)


def token_similarity(tokens_a: frozenset[str], tokens_b: frozenset[str]) -> float:
    """Overlap score of two token sets; 0.0 if either is empty."""
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / max(len(tokens_a), len(tokens_b))


class SimilarityIndex:
    """Pairwise course similarity, built once per request.

    Usage::

        index = SimilarityIndex.build(dataset.courses)
        index.get_similarity(course_a, course_b)   # 0.0 for unknown ids
    """

    def __init__(
        self,
        tokens: dict[EntityId, frozenset[str]],
        scores: dict[EntityId, dict[EntityId, float]],
    ) -> None:
        self._tokens = tokens
        self._scores = scores

    @classmethod
    def build(
        cls,
        courses: Iterable[Course],
        inverted_index_threshold: int = DEFAULT_INVERTED_INDEX_THRESHOLD,
    ) -> "SimilarityIndex":
        """Tokenize course names and compute all non-zero pair scores.

        Args:
            courses:                  Sanitized course list. Duplicate ids keep
                                      the last occurrence.
            inverted_index_threshold: Course count above which the inverted
                                      token index strategy is used.
        """
        tokens = {course.id: tokenize(course.name) for course in courses}
        if len(tokens) > inverted_index_threshold:
            scores = _build_inverted(tokens)
            strategy = "inverted"
        else:
            scores = _build_naive(tokens)
            strategy = "naive"

        pairs = sum(len(row) for row in scores.values())
        logger.debug(
            "Similarity index built: %d courses, %d non-zero pairs (%s)",
            len(tokens), pairs, strategy,
        )
        return cls(tokens, scores)

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, course_id: object) -> bool:
        return course_id in self._tokens

    def tokens(self, course_id: EntityId) -> frozenset[str]:
        return self._tokens.get(course_id, frozenset())

    def get_similarity(self, course_a: EntityId, course_b: EntityId) -> float:
        """Similarity of two course ids; 0.0 for any unknown pair."""
        if course_a == course_b:
            return 1.0 if course_a in self._tokens else 0.0
        return self._scores.get(course_a, {}).get(course_b, 0.0)

    def max_similarity(self, course_id: EntityId, others: Iterable[EntityId]) -> float:
        """Best similarity between ``course_id`` and any of ``others`` (0.0 if none)."""
        return max((self.get_similarity(course_id, o) for o in others), default=0.0)


# ── Build strategies ──────────────────────────────────────────────────────────

def _build_naive(
    tokens: dict[EntityId, frozenset[str]],
) -> dict[EntityId, dict[EntityId, float]]:
    scores: dict[EntityId, dict[EntityId, float]] = defaultdict(dict)
    ids = list(tokens)
    for i, a in enumerate(ids):
        for b in ids[i + 1:]:
            score = token_similarity(tokens[a], tokens[b])
            if score > 0.0:
                scores[a][b] = score
                scores[b][a] = score
    return dict(scores)


def _build_inverted(
    tokens: dict[EntityId, frozenset[str]],
) -> dict[EntityId, dict[EntityId, float]]:
    postings: dict[str, list[EntityId]] = defaultdict(list)
    for course_id, course_tokens in tokens.items():
        for token in course_tokens:
            postings[token].append(course_id)

    scores: dict[EntityId, dict[EntityId, float]] = defaultdict(dict)
    for a, a_tokens in tokens.items():
        candidates = {b for token in a_tokens for b in postings[token] if b != a}
        for b in candidates:
            if b in scores[a]:
                continue
            score = token_similarity(a_tokens, tokens[b])
            scores[a][b] = score
            scores[b][a] = score
    return dict(scores)
