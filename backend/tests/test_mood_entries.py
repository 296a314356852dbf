"""
Tests for MoodEntryRepository
=============================
Covers:
- get(): row found, no row (empty data or None from maybe_single)
- save_analysis(): one UPDATE with the four analysis columns, never analyzed_at
- mark_failed(): status-only UPDATE
- Client exceptions and zero-row updates raise PersistenceError

Run: pytest tests/test_mood_entries.py -v
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.models.mood import Classification, Recommendations
from app.services.errors import PersistenceError
from app.services.mood_entries import MOOD_ENTRIES_TABLE, MoodEntryRepository
from conftest import ENTRY_ID, OWNER_ID, make_entry


def _mock_db(select_data=None, update_data=None, select_result_is_none=False):
    """Mock the supabase-py builder chains used by the repository."""
    db = MagicMock()
    table = db.table.return_value

    if select_result_is_none:
        table.select.return_value.eq.return_value.maybe_single.return_value.execute.return_value = None
    else:
        selected = MagicMock()
        selected.data = select_data
        table.select.return_value.eq.return_value.maybe_single.return_value.execute.return_value = selected

    updated = MagicMock()
    updated.data = update_data if update_data is not None else [make_entry()]
    table.update.return_value.eq.return_value.execute.return_value = updated
    return db


_CLASSIFICATION = Classification(emotion="sadness", confidence_score=0.92, reasoning="job loss")
_RECOMMENDATIONS = Recommendations(items=["One.", "Two.", "Three."], source="ai")


class TestGet:

    @pytest.mark.asyncio
    async def test_returns_entry(self):
        db = _mock_db(select_data=make_entry(analysis_status="failed"))

        entry = await MoodEntryRepository(db).get(ENTRY_ID)

        assert entry.id == ENTRY_ID
        assert entry.user_id == OWNER_ID
        assert entry.analysis_status == "failed"
        db.table.assert_called_with(MOOD_ENTRIES_TABLE)
        db.table.return_value.select.return_value.eq.assert_called_with("id", ENTRY_ID)

    @pytest.mark.asyncio
    async def test_missing_row_returns_none(self):
        db = _mock_db(select_data=None)
        assert await MoodEntryRepository(db).get(ENTRY_ID) is None

    @pytest.mark.asyncio
    async def test_none_response_returns_none(self):
        db = _mock_db(select_result_is_none=True)
        assert await MoodEntryRepository(db).get(ENTRY_ID) is None


class TestSaveAnalysis:

    @pytest.mark.asyncio
    async def test_writes_analysis_columns_in_one_update(self):
        db = _mock_db()

        await MoodEntryRepository(db).save_analysis(ENTRY_ID, _CLASSIFICATION, _RECOMMENDATIONS)

        table = db.table.return_value
        table.update.assert_called_once_with({
            "emotion": "sadness",
            "confidence_score": 0.92,
            "recommendations": ["One.", "Two.", "Three."],
            "analysis_status": "completed",
        })
        table.update.return_value.eq.assert_called_once_with("id", ENTRY_ID)

    @pytest.mark.asyncio
    async def test_analyzed_at_is_left_to_the_database(self):
        db = _mock_db()

        await MoodEntryRepository(db).save_analysis(ENTRY_ID, _CLASSIFICATION, _RECOMMENDATIONS)

        fields = db.table.return_value.update.call_args.args[0]
        assert "analyzed_at" not in fields
        assert "reasoning" not in fields

    @pytest.mark.asyncio
    async def test_client_error_raises_persistence_error(self):
        db = _mock_db()
        db.table.return_value.update.return_value.eq.return_value.execute.side_effect = (
            RuntimeError("connection reset")
        )

        with pytest.raises(PersistenceError, match="connection reset"):
            await MoodEntryRepository(db).save_analysis(ENTRY_ID, _CLASSIFICATION, _RECOMMENDATIONS)

    @pytest.mark.asyncio
    async def test_zero_rows_updated_raises_persistence_error(self):
        db = _mock_db(update_data=[])

        with pytest.raises(PersistenceError):
            await MoodEntryRepository(db).save_analysis(ENTRY_ID, _CLASSIFICATION, _RECOMMENDATIONS)


class TestMarkFailed:

    @pytest.mark.asyncio
    async def test_writes_status_only(self):
        db = _mock_db()

        await MoodEntryRepository(db).mark_failed(ENTRY_ID)

        db.table.return_value.update.assert_called_once_with({"analysis_status": "failed"})

    @pytest.mark.asyncio
    async def test_client_error_raises_persistence_error(self):
        db = _mock_db()
        db.table.return_value.update.side_effect = RuntimeError("boom")

        with pytest.raises(PersistenceError):
            await MoodEntryRepository(db).mark_failed(ENTRY_ID)
