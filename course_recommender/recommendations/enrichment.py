"""
Optional AI enrichment of trainee results.

For each of a trainee's top ``max_enriched`` recommendations the enricher
asks the provider for a short personalised insight and stores it in
``Recommendation.ai_insight``. Enrichment never changes scores or order.

A provider failure on any recommendation is logged and that recommendation
keeps ``ai_insight=None``; the run continues.
"""

from __future__ import annotations

import logging

from course_recommender.ai.providers import AIProvider
from course_recommender.errors import AIProviderError
from course_recommender.models.recommendation import Recommendation, TraineeResult

logger = logging.getLogger(__name__)

INSIGHT_PROMPT = (
    'Generate a brief, personalized insight for why {trainee} should consider '
    'taking "{course}". Context: {context}. '
    "Keep it under 50 words and make it compelling and specific."
)


class RecommendationEnricher:
    """Attach provider-generated insights to a trainee's top recommendations."""

    def __init__(self, provider: AIProvider, max_enriched: int = 3) -> None:
        self.provider = provider
        self.max_enriched = max_enriched
        self.failures = 0

    def enrich(self, result: TraineeResult) -> TraineeResult:
        if not result.recommendations:
            return result

        recs: list[Recommendation] = []
        for position, rec in enumerate(result.recommendations):
            if position < self.max_enriched:
                rec = self._enrich_one(result, rec)
            recs.append(rec)
        return result.model_copy(update={"recommendations": recs})

    def build_prompt(self, result: TraineeResult, rec: Recommendation) -> str:
        if rec.similar_courses:
            context = "already enrolled in " + ", ".join(
                f'"{s.course_name}"' for s in rec.similar_courses
            )
        else:
            context = rec.explanation or f"{round(rec.probability * 100)}% match"
        return INSIGHT_PROMPT.format(
            trainee=result.trainee_name,
            course=rec.course_name,
            context=context,
        )

    def _enrich_one(self, result: TraineeResult, rec: Recommendation) -> Recommendation:
        try:
            insight = self.provider.generate(self.build_prompt(result, rec))
        except AIProviderError as exc:
            self.failures += 1
            logger.warning(
                "AI insight failed for trainee=%s course=%s: %s",
                result.trainee_id, rec.course_id, exc,
            )
            return rec
        return rec.model_copy(update={"ai_insight": insight})
