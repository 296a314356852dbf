"""
Shared test doubles for the mood analysis pipeline.

ScriptedMistral replays canned model replies (or raises canned errors) in
order, so the real EmotionClassifier and RecommendationGenerator run on top
of it. InMemoryMoodEntryRepository stands in for Supabase and records every
write for assertions.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, Optional

import pytest

from app.models.mood import (
    ANALYSIS_COMPLETED,
    ANALYSIS_FAILED,
    Classification,
    MoodEntry,
    Recommendations,
)
from app.services.errors import PersistenceError
from app.services.mood_classifier import EmotionClassifier
from app.services.mood_pipeline import MoodAnalysisPipeline
from app.services.recommendations import RecommendationGenerator

OWNER_ID = str(uuid.uuid4())
ENTRY_ID = str(uuid.uuid4())
JOB_LOSS_TEXT = "I lost my job today and don't know what to do"


def classifier_reply(emotion: Any = "sadness", confidence: Any = 0.9, **extra: Any) -> str:
    return json.dumps({"emotion": emotion, "confidence": confidence, "reasoning": "test", **extra})


def recommendations_reply(*items: str) -> str:
    items = items or ("Call a friend.", "Go for a short walk.", "Write down one next step.")
    return json.dumps({"recommendations": list(items)})


class ScriptedMistral:
    """Replays replies in order; Exception instances are raised instead."""

    def __init__(self, *replies: Any) -> None:
        self._replies = list(replies)
        self.prompts: list[str] = []

    async def complete_json(
        self, system_prompt: str, user_prompt: str, *, temperature: float, max_tokens: int
    ) -> str:
        self.prompts.append(user_prompt)
        if not self._replies:
            raise AssertionError("ScriptedMistral ran out of replies")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class InMemoryMoodEntryRepository:
    """Dict-backed stand-in for MoodEntryRepository."""

    def __init__(
        self,
        entries: Optional[list[dict]] = None,
        fail_save: bool = False,
        fail_mark: bool = False,
    ) -> None:
        self.rows: dict[str, dict] = {row["id"]: dict(row) for row in entries or []}
        self.updates: list[tuple[str, dict]] = []
        self.lookups: list[str] = []
        self._fail_save = fail_save
        self._fail_mark = fail_mark

    async def get(self, entry_id: str) -> Optional[MoodEntry]:
        self.lookups.append(entry_id)
        row = self.rows.get(entry_id)
        return MoodEntry(**row) if row else None

    async def save_analysis(
        self, entry_id: str, classification: Classification, recommendations: Recommendations
    ) -> None:
        if self._fail_save:
            raise PersistenceError(f"Failed to update mood entry {entry_id}")
        self._write(entry_id, {
            "emotion": classification.emotion,
            "confidence_score": classification.confidence_score,
            "recommendations": list(recommendations.items),
            "analysis_status": ANALYSIS_COMPLETED,
        })

    async def mark_failed(self, entry_id: str) -> None:
        if self._fail_mark:
            raise PersistenceError(f"Failed to update mood entry {entry_id}")
        self._write(entry_id, {"analysis_status": ANALYSIS_FAILED})

    def _write(self, entry_id: str, fields: dict) -> None:
        self.updates.append((entry_id, fields))
        self.rows.setdefault(entry_id, {"id": entry_id}).update(fields)


def make_entry(text: Optional[str] = JOB_LOSS_TEXT, **overrides: Any) -> dict:
    return {"id": ENTRY_ID, "user_id": OWNER_ID, "text": text, **overrides}


@pytest.fixture
def pipeline_factory():
    """Build a pipeline over scripted model replies and an in-memory store.

    Returns (pipeline, repository, mistral).
    """

    def _build(
        *replies: Any,
        entries: Optional[list[dict]] = None,
        fail_save: bool = False,
        fail_mark: bool = False,
    ):
        mistral = ScriptedMistral(*replies)
        repository = InMemoryMoodEntryRepository(
            entries if entries is not None else [make_entry()],
            fail_save=fail_save,
            fail_mark=fail_mark,
        )
        pipeline = MoodAnalysisPipeline(
            classifier=EmotionClassifier(mistral),
            recommender=RecommendationGenerator(mistral),
            repository=repository,
        )
        return pipeline, repository, mistral

    return _build
