"""
Peer-Support Schemas
====================
Rows the notification handlers read from webhook payloads.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class SupportRequest(BaseModel):
    """A row of support_requests: a user asking a counsellor for help."""

    id: Optional[str] = None
    user_id: str
    # Null when the request is open to any available counsellor.
    counsellor_id: Optional[str] = None
    status: Optional[str] = None


class ChatMessage(BaseModel):
    """A row of messages inside a conversation thread."""

    id: Optional[str] = None
    thread_id: str
    sender_id: str
    receiver_id: str
    content: str = ""
