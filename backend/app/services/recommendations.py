"""
Recommendation Service
======================
Self-care tips for an analysed mood entry.

Two separate concerns live here:

    RecommendationGenerator.generate()  asks Mistral AI for 3 tips tailored
                                        to the emotion and the entry text.
                                        Raises RecommendationError on any
                                        failure: it never falls back itself.
    get_fallback_recommendations()      static, emotion-keyed tips used when
                                        generation fails. Pure, never raises.

The pipeline combines them so the user always gets *some* advice.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping

import httpx

from app.models.mood import Recommendations
from app.services.errors import RecommendationError
from app.services.mistral import MistralAPIError, MistralClient, parse_json_object

logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 3

# ---------------------------------------------------------------------------
# Fallback catalog keyed by taxonomy emotion
# ---------------------------------------------------------------------------

FALLBACK_RECOMMENDATIONS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "joy": (
        "Share your happiness with someone you care about.",
        "Practice gratitude by writing down three things you're thankful for.",
        "Channel this positive energy into a creative activity.",
    ),
    "sadness": (
        "It's okay to feel sad. Give yourself permission to feel your emotions.",
        "Connect with a friend or loved one for support.",
        "Try gentle physical activity like a walk in nature.",
    ),
    "anxiety": (
        "Practice deep breathing: inhale for 4, hold for 4, exhale for 4.",
        "Ground yourself by naming 5 things you can see, 4 you can touch, 3 you can hear.",
        "Consider talking to a mental health professional if anxiety persists.",
    ),
    "anger": (
        "Take a few deep breaths before responding to what's making you angry.",
        "Try physical exercise to release tension in a healthy way.",
        "Write about your feelings to process them constructively.",
    ),
    "fear": (
        "Remember that it's normal to feel afraid sometimes.",
        "Focus on what you can control in the present moment.",
        "Reach out to someone you trust to share your concerns.",
    ),
    "contentment": (
        "Savor this peaceful feeling and notice what brings you contentment.",
        "Use this calm energy to reflect on your goals and values.",
        "Practice mindfulness to extend this sense of wellbeing.",
    ),
    "excitement": (
        "Channel your energy into something productive or creative.",
        "Share your excitement with others who will celebrate with you.",
        "Plan ahead to make the most of whatever you're excited about.",
    ),
    "frustration": (
        "Step away from the situation temporarily to gain perspective.",
        "Break down what's frustrating you into smaller, manageable parts.",
        "Be patient with yourself - progress takes time.",
    ),
    "loneliness": (
        "Reach out to someone - even a small connection can help.",
        "Join a community activity or group that interests you.",
        "Remember that feeling lonely is temporary and you're not alone in feeling this way.",
    ),
    "hope": (
        "Write down what you're hopeful about to reinforce these positive feelings.",
        "Take a small action toward what you're hoping for.",
        "Share your hope with others to inspire them too.",
    ),
    "overwhelmed": (
        "Prioritize one task at a time instead of trying to do everything at once.",
        "It's okay to say no and set boundaries.",
        "Consider breaking down larger tasks into smaller, achievable steps.",
    ),
    "peaceful": (
        "Take time to appreciate this moment of peace.",
        "Notice what creates peace for you so you can recreate it later.",
        "Use this calm state for reflection or meditation.",
    ),
    "confused": (
        "It's okay not to have all the answers right now.",
        "Try writing down your thoughts to clarify what's confusing you.",
        "Talk to someone who might offer a different perspective.",
    ),
    "grateful": (
        "Keep a gratitude journal to capture what you're thankful for.",
        "Express your appreciation to someone who has helped you.",
        "Reflect on how gratitude contributes to your overall wellbeing.",
    ),
    "stressed": (
        "Take short breaks throughout your day to reset.",
        "Practice progressive muscle relaxation to release physical tension.",
        "Identify what's causing stress and consider what you can change or accept.",
    ),
})

DEFAULT_RECOMMENDATIONS: tuple[str, ...] = (
    "Take a few moments to breathe deeply and center yourself.",
    "Consider talking to someone you trust about how you're feeling.",
    "Be kind to yourself - all emotions are valid and temporary.",
)


def get_fallback_recommendations(emotion: str) -> list[str]:
    """Return the static tips for *emotion*, or the generic default.

    Always returns a new list so callers can't mutate the catalog.
    """
    key = emotion.strip().lower() if isinstance(emotion, str) else ""
    return list(FALLBACK_RECOMMENDATIONS.get(key, DEFAULT_RECOMMENDATIONS))


def fallback_for(emotion: str) -> Recommendations:
    return Recommendations(items=get_fallback_recommendations(emotion), source="fallback")


# ---------------------------------------------------------------------------
# AI generation
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = (
    "You are an empathetic mental health support assistant. Provide "
    "compassionate, practical advice to help people manage their emotions "
    "and wellbeing. Always respond in valid JSON format."
)

_USER_PROMPT_TEMPLATE = """\
Based on the following mood journal entry where the person is feeling \
"{emotion}", provide 3 helpful, empathetic, and actionable recommendations \
or tips to help them. Make the suggestions specific, supportive, and practical.

Journal Entry:
"{text}"

Respond in JSON format with:
{{
  "recommendations": [
    "First actionable recommendation",
    "Second actionable recommendation",
    "Third actionable recommendation"
  ]
}}

Keep each recommendation brief (1-2 sentences) and focused on immediate, helpful actions."""


class RecommendationGenerator:
    """Generates personalised tips with Mistral AI."""

    def __init__(
        self,
        client: MistralClient,
        temperature: float = 0.7,
        max_tokens: int = 300,
    ) -> None:
        self._client = client
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def generate(self, emotion: str, text: str) -> Recommendations:
        """Return AI-sourced recommendations. Raises RecommendationError."""
        prompt = _USER_PROMPT_TEMPLATE.format(emotion=emotion, text=text)

        try:
            content = await self._client.complete_json(
                _SYSTEM_PROMPT,
                prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except (MistralAPIError, httpx.HTTPError, ValueError) as exc:
            raise RecommendationError(f"Failed to generate recommendations: {exc}") from exc

        if not content:
            raise RecommendationError("No response from Mistral AI for recommendations")

        try:
            parsed = parse_json_object(content)
        except ValueError as exc:
            raise RecommendationError(f"Unparsable recommendations response: {exc}") from exc

        items = _validate_items(parsed.get("recommendations"))
        logger.info("Generated %d recommendations for %s", len(items), emotion)
        return Recommendations(items=items, source="ai")


def _validate_items(value: object) -> list[str]:
    """Keep non-blank strings, at most three. Raises RecommendationError."""
    if not isinstance(value, list) or not value:
        raise RecommendationError("Invalid recommendations format from Mistral AI")

    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if not items:
        raise RecommendationError("Mistral AI returned no usable recommendations")
    return items[:MAX_RECOMMENDATIONS]
