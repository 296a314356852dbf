"""
Mood Entry Repository
=====================
Reads and updates rows of the mood_entries table.

Only the analysis columns are ever written, and always as a single UPDATE
so the row's analysis is replaced (never appended to) in one atomic write.
``analyzed_at`` is not sent: a BEFORE UPDATE trigger stamps it with the
database clock whenever analysis_status changes hands
(see supabase/migrations/0001_mood_entries.sql).

supabase-py is synchronous; calls run in a worker thread so a slow write
doesn't stall other requests on the event loop.
"""

from __future__ import annotations

import asyncio
import logging

from supabase import Client

from app.models.mood import (
    ANALYSIS_COMPLETED,
    ANALYSIS_FAILED,
    Classification,
    MoodEntry,
    Recommendations,
)
from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)

MOOD_ENTRIES_TABLE = "mood_entries"


class MoodEntryRepository:
    """Supabase-backed access to mood entries."""

    def __init__(self, db: Client) -> None:
        self._db = db

    async def get(self, entry_id: str) -> MoodEntry | None:
        """Fetch one entry, or None if it does not exist."""
        result = await asyncio.to_thread(self._select_one, entry_id)
        # maybe_single() yields None (not an empty response) on some
        # supabase-py versions when no row matches.
        if result is None or not result.data:
            return None
        return MoodEntry(**result.data)

    async def save_analysis(
        self,
        entry_id: str,
        classification: Classification,
        recommendations: Recommendations,
    ) -> None:
        """Write a completed analysis. Raises PersistenceError."""
        await self._update(
            entry_id,
            {
                "emotion": classification.emotion,
                "confidence_score": classification.confidence_score,
                "recommendations": list(recommendations.items),
                "analysis_status": ANALYSIS_COMPLETED,
            },
        )

    async def mark_failed(self, entry_id: str) -> None:
        """Flag the entry's analysis as failed. Raises PersistenceError."""
        await self._update(entry_id, {"analysis_status": ANALYSIS_FAILED})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _select_one(self, entry_id: str):
        return (
            self._db.table(MOOD_ENTRIES_TABLE)
            .select("*")
            .eq("id", entry_id)
            .maybe_single()
            .execute()
        )

    async def _update(self, entry_id: str, fields: dict) -> None:
        try:
            result = await asyncio.to_thread(
                lambda: self._db.table(MOOD_ENTRIES_TABLE)
                .update(fields)
                .eq("id", entry_id)
                .execute()
            )
        except Exception as exc:
            raise PersistenceError(
                f"Failed to update mood entry {entry_id}: {exc}"
            ) from exc

        if not result.data:
            raise PersistenceError(f"Mood entry {entry_id} was not updated")
