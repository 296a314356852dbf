"""
Database Webhooks Router
========================
Receives Supabase Database Webhooks: the reactive triggers of the system.

    POST /api/v1/hooks/mood-entries      INSERT → run the mood analysis
    POST /api/v1/hooks/support-requests  INSERT → notify counsellor(s)
                                         UPDATE → notify user on acceptance
    POST /api/v1/hooks/messages          INSERT → notify the receiver

Status codes matter here. For mood entries a classifier or storage failure
answers 500 so the delivery is retried; an entry without text answers 422
and is never retried. Notification hooks always answer 200 once the payload
parses. Pushes are best effort and never retried.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError as SchemaValidationError

from app.dependencies import (
    get_mood_pipeline,
    get_notification_service,
    verify_webhook_secret,
)
from app.models.mood import MoodEntry
from app.models.notification import ChatMessage, SupportRequest
from app.models.webhook import DatabaseWebhookPayload, WebhookAck
from app.services.errors import PipelineError
from app.services.mood_pipeline import MoodAnalysisPipeline
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/hooks",
    tags=["webhooks"],
    dependencies=[Depends(verify_webhook_secret)],
)


def _invalid_record(table: str, exc: SchemaValidationError) -> HTTPException:
    logger.error("Malformed %s webhook record: %s", table, exc)
    return HTTPException(
        status_code=422,
        detail={"message": f"Malformed {table} record", "code": "invalid_record"},
    )


# ---------------------------------------------------------------------------
# Mood entries
# ---------------------------------------------------------------------------

@router.post(
    "/mood-entries",
    response_model=WebhookAck,
    summary="Analyse a newly created mood entry",
    responses={
        422: {"description": "Entry has no text or the record is malformed"},
        500: {"description": "Analysis failed, the delivery should be retried"},
    },
)
async def on_mood_entry_event(
    payload: DatabaseWebhookPayload,
    pipeline: MoodAnalysisPipeline = Depends(get_mood_pipeline),
) -> WebhookAck:
    if payload.type != "INSERT" or not payload.record:
        return WebhookAck(status="ignored", detail=f"{payload.type} events are not analysed")

    try:
        entry = MoodEntry(**payload.record)
    except SchemaValidationError as exc:
        raise _invalid_record("mood_entries", exc) from exc

    try:
        result = await pipeline.analyse_new_entry(entry)
    except PipelineError as exc:
        logger.error("Error analyzing mood entry %s: %s", entry.id, exc)
        # Validation failures are terminal; everything else should be redelivered.
        status_code = 422 if exc.status_code < 500 else status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(
            status_code=status_code,
            detail={"message": exc.message, "code": exc.code},
        ) from exc

    return WebhookAck(
        status="processed",
        detail=f"{result.classification.emotion} ({result.recommendations.source} recommendations)",
    )


# ---------------------------------------------------------------------------
# Support requests
# ---------------------------------------------------------------------------

@router.post(
    "/support-requests",
    response_model=WebhookAck,
    summary="Push notifications for support request changes",
)
async def on_support_request_event(
    payload: DatabaseWebhookPayload,
    service: NotificationService = Depends(get_notification_service),
) -> WebhookAck:
    if not payload.record or payload.type not in ("INSERT", "UPDATE"):
        return WebhookAck(status="ignored")

    try:
        after = SupportRequest(**payload.record)
        before = SupportRequest(**payload.old_record) if payload.old_record else None
    except SchemaValidationError as exc:
        raise _invalid_record("support_requests", exc) from exc

    request_id = after.id or ""

    if payload.type == "INSERT":
        sent = await service.notify_counsellors_of_request(request_id, after)
        return WebhookAck(status="processed", detail=f"{sent} notification(s) sent")

    sent = await service.notify_user_of_acceptance(request_id, before, after)
    return WebhookAck(status="processed" if sent else "ignored")


# ---------------------------------------------------------------------------
# Chat messages
# ---------------------------------------------------------------------------

@router.post(
    "/messages",
    response_model=WebhookAck,
    summary="Push a notification for a new chat message",
)
async def on_message_event(
    payload: DatabaseWebhookPayload,
    service: NotificationService = Depends(get_notification_service),
) -> WebhookAck:
    if payload.type != "INSERT" or not payload.record:
        return WebhookAck(status="ignored")

    try:
        message = ChatMessage(**payload.record)
    except SchemaValidationError as exc:
        raise _invalid_record("messages", exc) from exc

    sent = await service.notify_message_receiver(message.thread_id, message)
    return WebhookAck(status="processed" if sent else "ignored")
