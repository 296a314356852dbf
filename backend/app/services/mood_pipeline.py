"""
Mood Analysis Pipeline
======================
Classifies a mood journal entry, attaches self-care recommendations, and
writes the result back to the entry.

Two entry points share the same three stages:

    analyse_new_entry()  reactive path: a database webhook fires for every
                         new entry. Errors propagate so the webhook is
                         re-delivered.
    retry_analysis()     on-demand path: the entry's owner asks for a
                         fresh analysis and gets the result back.

Stages and their failure policy:
    1. Classification     required. On failure the entry is marked
                          "failed" (best effort) and the error propagates.
    2. Recommendations    optional-with-default. Any failure is logged and
                          replaced by the static fallback catalog.
    3. Persistence        one atomic update. Failure propagates; no further
                          status write is attempted.

Re-running for the same entry recomputes and overwrites, so at-least-once
delivery wastes a model call at worst and never corrupts the row.
"""

from __future__ import annotations

import logging

from app.config import Settings
from app.db.supabase import get_supabase_client
from app.models.mood import AnalysisResult, Classification, MoodEntry, Recommendations
from app.services.errors import (
    AnalysisError,
    AuthorizationError,
    PersistenceError,
    RecommendationError,
    ValidationError,
)
from app.services.mistral import MistralClient
from app.services.mood_classifier import EmotionClassifier
from app.services.mood_entries import MoodEntryRepository
from app.services.recommendations import RecommendationGenerator, fallback_for

logger = logging.getLogger(__name__)


class MoodAnalysisPipeline:
    """Runs the classify → recommend → persist sequence for one entry."""

    def __init__(
        self,
        classifier: EmotionClassifier,
        recommender: RecommendationGenerator,
        repository: MoodEntryRepository,
    ) -> None:
        self._classifier = classifier
        self._recommender = recommender
        self._repository = repository

    # ------------------------------------------------------------------
    # Reactive path
    # ------------------------------------------------------------------

    async def analyse_new_entry(self, entry: MoodEntry) -> AnalysisResult:
        """Analyse a freshly created entry.

        Raises ValidationError (no text, terminal), AnalysisError or
        PersistenceError (both expected to be retried by redelivery).
        """
        logger.info("Analyzing mood entry: %s", entry.id)

        if not entry.has_text:
            raise ValidationError("Mood entry has no text to analyze")

        return await self._run(entry)

    # ------------------------------------------------------------------
    # On-demand retry path
    # ------------------------------------------------------------------

    async def retry_analysis(
        self, entry_id: str | None, caller_id: str | None
    ) -> AnalysisResult:
        """Re-run the analysis for an entry owned by *caller_id*.

        Every precondition fails fast with its own code before any model
        call or write.
        """
        if not caller_id:
            raise AuthorizationError("User must be authenticated", code="unauthenticated")

        if not entry_id or not entry_id.strip():
            raise ValidationError("Entry ID is required", code="invalid-argument")

        entry = await self._repository.get(entry_id)
        if entry is None:
            raise ValidationError("Mood entry not found", code="not-found")

        if entry.user_id != caller_id:
            raise AuthorizationError(
                "You do not have permission to retry this analysis",
                code="permission-denied",
            )

        if not entry.has_text:
            raise ValidationError("Mood entry has no text to analyze", code="invalid-argument")

        logger.info("Retrying analysis for mood entry %s", entry.id)
        return await self._run(entry)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run(self, entry: MoodEntry) -> AnalysisResult:
        classification = await self._classify_or_mark_failed(entry)
        recommendations = await self._recommend(classification, entry.text or "")

        await self._repository.save_analysis(entry.id, classification, recommendations)

        logger.info(
            "Successfully analyzed mood entry %s: %s (%.2f), %s recommendations",
            entry.id,
            classification.emotion,
            classification.confidence_score,
            recommendations.source,
        )
        return AnalysisResult(
            entry_id=entry.id,
            classification=classification,
            recommendations=recommendations,
        )

    async def _classify_or_mark_failed(self, entry: MoodEntry) -> Classification:
        try:
            return await self._classifier.classify(entry.text or "")
        except AnalysisError:
            logger.error("Error analyzing mood entry %s", entry.id)
            await self._mark_failed_best_effort(entry.id)
            raise

    async def _recommend(self, classification: Classification, text: str) -> Recommendations:
        try:
            return await self._recommender.generate(classification.emotion, text)
        except RecommendationError as exc:
            logger.warning(
                "Failed to generate AI recommendations, using fallback: %s", exc
            )
            return fallback_for(classification.emotion)

    async def _mark_failed_best_effort(self, entry_id: str) -> None:
        # A failure here is only logged: escalating it would turn one bad
        # analysis into an endless retry loop.
        try:
            await self._repository.mark_failed(entry_id)
        except PersistenceError:
            logger.exception("Failed to update entry status for %s", entry_id)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

def build_mood_pipeline(
    settings: Settings, client: MistralClient | None = None
) -> MoodAnalysisPipeline:
    """Construct the pipeline and its collaborators from settings."""
    client = client or MistralClient.from_settings(settings)
    return MoodAnalysisPipeline(
        classifier=EmotionClassifier(
            client,
            temperature=settings.classifier_temperature,
            max_tokens=settings.classifier_max_tokens,
        ),
        recommender=RecommendationGenerator(
            client,
            temperature=settings.recommendation_temperature,
            max_tokens=settings.recommendation_max_tokens,
        ),
        repository=MoodEntryRepository(get_supabase_client()),
    )
