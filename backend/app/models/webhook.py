"""
Database Webhook Schemas
========================
Supabase Database Webhooks POST one of these for every INSERT / UPDATE /
DELETE on a watched table. ``record`` is the new row, ``old_record`` the
previous one (UPDATE and DELETE only).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class DatabaseWebhookPayload(BaseModel):
    """Envelope sent by a Supabase database webhook."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["INSERT", "UPDATE", "DELETE"]
    table: str
    db_schema: Optional[str] = Field(default=None, alias="schema")
    record: Optional[dict] = None
    old_record: Optional[dict] = None


class WebhookAck(BaseModel):
    """Response body for every webhook call that did not fail."""

    status: Literal["processed", "ignored"]
    detail: Optional[str] = None
