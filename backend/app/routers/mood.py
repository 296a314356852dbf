"""
Mood Analysis Router
====================
POST /api/v1/mood/retry-analysis: Re-run the AI analysis of a mood entry.

Used by the app when an entry's analysis_status is "failed" (or the user
wants a fresh take). Unlike the webhook path, the caller gets the result
back directly:

    1. Resolve the caller from the Supabase bearer token
    2. Check, in order: signed in → entry id given → entry exists →
       caller owns it → entry has text
    3. Classify → recommend (fallback on failure) → persist
    4. Return {success, emotion, confidenceScore, recommendations}

Each failed check returns a distinct machine-readable code in
detail.code: unauthenticated, invalid-argument, not-found,
permission-denied, or internal.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from app.db.supabase import get_supabase_client
from app.dependencies import get_mood_pipeline
from app.models.mood import RetryAnalysisRequest, RetryAnalysisResponse
from app.services.errors import PipelineError
from app.services.mood_pipeline import MoodAnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mood", tags=["mood"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_authenticated_user_id(authorization: Optional[str]) -> Optional[str]:
    """Return the Supabase user id behind the bearer token.

    Returns None for a missing, empty, invalid or expired token. The
    pipeline turns that into an "unauthenticated" error, so the check
    order stays in one place.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return None

    token = authorization.removeprefix("Bearer ").strip()
    if not token:
        return None

    db = get_supabase_client()

    try:
        auth_response = db.auth.get_user(token)
    except Exception as exc:
        logger.warning("Auth token verification failed: %s", exc)
        return None

    if not auth_response or not auth_response.user:
        return None

    return auth_response.user.id


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.post(
    "/retry-analysis",
    response_model=RetryAnalysisResponse,
    status_code=status.HTTP_200_OK,
    summary="Retry the analysis of a mood entry",
    description=(
        "Re-runs emotion classification and recommendation generation for one "
        "of the caller's mood entries, stores the result, and returns it. "
        "Recommendations fall back to curated tips if AI generation fails."
    ),
    responses={
        200: {"description": "Analysis completed"},
        400: {"description": "Entry id missing or entry has no text (invalid-argument)"},
        401: {"description": "Authentication required (unauthenticated)"},
        403: {"description": "Entry belongs to another user (permission-denied)"},
        404: {"description": "Entry not found (not-found)"},
        500: {"description": "Analysis or storage failed (internal)"},
    },
)
async def retry_mood_analysis(
    body: RetryAnalysisRequest,
    authorization: Optional[str] = Header(
        default=None, description="Bearer token from Supabase Auth"
    ),
    pipeline: MoodAnalysisPipeline = Depends(get_mood_pipeline),
) -> RetryAnalysisResponse:
    """Retry the analysis of one mood entry owned by the caller."""
    caller_id = _get_authenticated_user_id(authorization)

    try:
        result = await pipeline.retry_analysis(body.entry_id, caller_id)
    except PipelineError as exc:
        if exc.status_code >= 500:
            logger.error("Error retrying analysis for %s: %s", body.entry_id, exc)
        raise HTTPException(
            status_code=exc.status_code,
            detail={"message": exc.message, "code": exc.code},
        ) from exc
    except Exception as exc:
        logger.exception("Error retrying analysis for %s", body.entry_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": f"Failed to retry analysis: {exc}", "code": "internal"},
        ) from exc

    return RetryAnalysisResponse.from_result(result)
