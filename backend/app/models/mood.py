"""
Mood Entry Schemas
==================
Pydantic models for mood journal entries and their AI analysis.

Key design decisions:
- The emotion taxonomy is closed. A Classification can only ever hold one
  of the 15 labels below; anything the model invents is normalised to
  "confused" before it reaches this type.
- Classification and Recommendations are separate types. A
  classification is required for an analysis to complete, whereas
  recommendations always exist (AI-generated or from the fallback catalog).
- The retry endpoint speaks camelCase to the mobile app; the database and
  the Python side use snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Allowed values
# ---------------------------------------------------------------------------

EMOTIONS: tuple[str, ...] = (
    "joy",
    "sadness",
    "anxiety",
    "anger",
    "fear",
    "contentment",
    "excitement",
    "frustration",
    "loneliness",
    "hope",
    "overwhelmed",
    "peaceful",
    "confused",
    "grateful",
    "stressed",
)

# Catch-all label used when the model's answer is outside the taxonomy.
AMBIGUOUS_EMOTION = "confused"
DEFAULT_CONFIDENCE = 0.5

ANALYSIS_COMPLETED = "completed"
ANALYSIS_FAILED = "failed"


# ---------------------------------------------------------------------------
# Stored record
# ---------------------------------------------------------------------------

class MoodEntry(BaseModel):
    """A row of the mood_entries table.

    Created by the mobile app with ``text`` and ``user_id``; the analysis
    fields stay null until the pipeline writes them.
    """

    id: str
    user_id: Optional[str] = None
    text: Optional[str] = None
    emotion: Optional[str] = None
    confidence_score: Optional[float] = None
    recommendations: Optional[list[str]] = None
    analysis_status: Optional[Literal["completed", "failed"]] = None
    analyzed_at: Optional[datetime] = None

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


# ---------------------------------------------------------------------------
# Pipeline results
# ---------------------------------------------------------------------------

class Classification(BaseModel):
    """Validated output of the emotion classifier."""

    model_config = ConfigDict(frozen=True)

    emotion: str = Field(..., description="One of the 15 taxonomy labels.")
    confidence_score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Model confidence, clamped into [0, 1].",
    )
    # Logged for debugging, never persisted.
    reasoning: Optional[str] = None

    @field_validator("emotion")
    @classmethod
    def _emotion_in_taxonomy(cls, value: str) -> str:
        if value not in EMOTIONS:
            raise ValueError(f"emotion must be one of the taxonomy labels, got {value!r}")
        return value


class Recommendations(BaseModel):
    """Self-care tips attached to an analysed entry."""

    model_config = ConfigDict(frozen=True)

    items: list[str] = Field(..., min_length=1)
    source: Literal["ai", "fallback"]


class AnalysisResult(BaseModel):
    """What one successful pipeline run produced."""

    entry_id: str
    classification: Classification
    recommendations: Recommendations


# ---------------------------------------------------------------------------
# Retry endpoint
# ---------------------------------------------------------------------------

class RetryAnalysisRequest(BaseModel):
    """Body of POST /api/v1/mood/retry-analysis."""

    model_config = ConfigDict(populate_by_name=True)

    # Optional so a missing id surfaces as our own invalid-argument error
    # rather than FastAPI's generic 422.
    entry_id: Optional[str] = Field(default=None, alias="entryId")


class RetryAnalysisResponse(BaseModel):
    """Returned to the app after a successful manual retry."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    emotion: str
    confidence_score: float = Field(..., alias="confidenceScore")
    recommendations: list[str]

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "RetryAnalysisResponse":
        return cls(
            emotion=result.classification.emotion,
            confidence_score=result.classification.confidence_score,
            recommendations=list(result.recommendations.items),
        )
