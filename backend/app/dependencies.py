"""
Shared FastAPI Dependencies
===========================
Services are built on first use and kept on ``app.state`` so one instance
(and one Mistral client) serves every request in the process. Tests swap
them out with ``app.dependency_overrides``.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from app.config import get_settings
from app.db.supabase import get_supabase_client
from app.services.mood_pipeline import MoodAnalysisPipeline, build_mood_pipeline
from app.services.notifications import FirebasePushSender, NotificationService

logger = logging.getLogger(__name__)


def get_mood_pipeline(request: Request) -> MoodAnalysisPipeline:
    pipeline = getattr(request.app.state, "mood_pipeline", None)
    if pipeline is None:
        pipeline = build_mood_pipeline(get_settings())
        request.app.state.mood_pipeline = pipeline
    return pipeline


def get_notification_service(request: Request) -> NotificationService:
    service = getattr(request.app.state, "notification_service", None)
    if service is None:
        settings = get_settings()
        service = NotificationService(
            get_supabase_client(),
            FirebasePushSender(enabled=settings.enable_push_notifications),
        )
        request.app.state.notification_service = service
    return service


def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(
        default=None, description="Shared secret configured on the database webhook"
    ),
) -> None:
    """Reject webhook calls that don't carry the configured shared secret."""
    expected = get_settings().webhook_secret
    if not expected:
        logger.warning("WEBHOOK_SECRET is not set, accepting unauthenticated webhook")
        return

    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"message": "Invalid webhook secret", "code": "auth_invalid"},
        )
