"""
Mood Classifier Service
=======================
Classifies the dominant emotion of a mood journal entry using Mistral AI.

The model is asked to pick exactly ONE label from the closed taxonomy in
app.models.mood.EMOTIONS and to answer with JSON:

    {"emotion": "...", "confidence": 0.0-1.0, "reasoning": "..."}

The answer is untrusted. Before it leaves this module:
    - the emotion is matched case-insensitively against the taxonomy; an
      unknown label becomes "confused" with confidence 0.5 (ambiguity maps
      to the catch-all, it does not abort the pipeline)
    - a missing or non-numeric confidence becomes 0.5, then every value is
      clamped into [0, 1]
    - the reasoning is logged, never stored

Transport errors and unparsable responses raise AnalysisError. There is no
retry here; the caller's delivery mechanism owns retries.
"""

from __future__ import annotations

import logging
import math
from typing import Any

import httpx

from app.models.mood import (
    AMBIGUOUS_EMOTION,
    DEFAULT_CONFIDENCE,
    EMOTIONS,
    Classification,
)
from app.services.errors import AnalysisError, ValidationError
from app.services.mistral import MistralAPIError, MistralClient, parse_json_object

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are an empathetic mental health assistant that analyzes mood "
    "journal entries to identify emotions. Always respond in valid JSON format."
)

_USER_PROMPT_TEMPLATE = """\
Analyze the following mood journal entry and determine the primary emotion. \
Choose only ONE emotion from this list: {emotions}.

Journal Entry:
"{text}"

Respond in JSON format with:
{{
  "emotion": "the primary emotion from the list",
  "confidence": a number between 0 and 1 indicating confidence,
  "reasoning": "brief explanation of why this emotion was chosen"
}}

Be empathetic and consider the overall tone and context."""


def build_classification_prompt(text: str) -> str:
    return _USER_PROMPT_TEMPLATE.format(emotions=", ".join(EMOTIONS), text=text)


# ---------------------------------------------------------------------------
# Normalisation (pure)
# ---------------------------------------------------------------------------

def _coerce_confidence(value: Any) -> float:
    """Default anything that is not a real number to 0.5, then clamp to [0, 1].

    Booleans are ints in Python but not confidences; numeric strings are
    treated as garbage like any other non-number.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, float(value)))


def normalise_classification(raw: dict) -> Classification:
    """Turn a parsed model response into a taxonomy-safe Classification."""
    raw_emotion = raw.get("emotion")
    label = raw_emotion.strip().lower() if isinstance(raw_emotion, str) else None

    if label not in EMOTIONS:
        logger.warning(
            "Mistral AI returned unexpected emotion %r, defaulting to %r",
            raw_emotion,
            AMBIGUOUS_EMOTION,
        )
        return Classification(
            emotion=AMBIGUOUS_EMOTION,
            confidence_score=DEFAULT_CONFIDENCE,
        )

    reasoning = raw.get("reasoning")
    return Classification(
        emotion=label,
        confidence_score=_coerce_confidence(raw.get("confidence")),
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class EmotionClassifier:
    """Classifies journal text into one of the taxonomy emotions."""

    def __init__(
        self,
        client: MistralClient,
        temperature: float = 0.3,
        max_tokens: int = 200,
    ) -> None:
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def classify(self, text: str) -> Classification:
        """Classify *text*. Raises ValidationError or AnalysisError."""
        if not text or not text.strip():
            raise ValidationError("Mood entry has no text to analyze")

        try:
            content = await self._client.complete_json(
                _SYSTEM_PROMPT,
                build_classification_prompt(text),
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except (MistralAPIError, httpx.HTTPError, ValueError) as exc:
            logger.exception("Mistral AI call failed for emotion classification")
            raise AnalysisError(f"Failed to analyze mood with Mistral AI: {exc}") from exc

        if not content:
            raise AnalysisError("No response from Mistral AI")

        try:
            parsed = parse_json_object(content)
        except ValueError as exc:
            logger.error(
                "Unparsable classification response from Mistral AI: %s",
                content[:200],
            )
            raise AnalysisError(f"Failed to parse Mistral AI response: {exc}") from exc

        classification = normalise_classification(parsed)
        logger.info(
            "Mistral AI analysis: %s (%.2f), reasoning: %s",
            classification.emotion,
            classification.confidence_score,
            classification.reasoning,
        )
        return classification
