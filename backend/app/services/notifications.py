"""
Peer-Support Notification Service
=================================
Push notifications for the support-request and chat flows.

    notify_counsellors_of_request()  new support request → the assigned
                                     counsellor, or every available one
    notify_user_of_acceptance()      request status flips to "accepted" →
                                     the requesting user
    notify_message_receiver()        new chat message → its receiver

Delivery is fire-and-forget: a missing user, a missing FCM token, or a
failed send is logged and swallowed. Nothing here raises to the webhook
caller and nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from firebase_admin import messaging
from supabase import Client

from app.db.firebase import get_firebase_app
from app.models.notification import ChatMessage, SupportRequest

logger = logging.getLogger(__name__)

MESSAGE_PREVIEW_CHARS = 100


# ---------------------------------------------------------------------------
# Push delivery
# ---------------------------------------------------------------------------

class PushSender(Protocol):
    def send(self, token: str, title: str, body: str, data: dict[str, str]) -> bool:
        ...


class FirebasePushSender:
    """Sends pushes through Firebase Cloud Messaging."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    def send(self, token: str, title: str, body: str, data: dict[str, str]) -> bool:
        """Send one push. Returns False (and logs) instead of raising."""
        if not self._enabled:
            logger.info("Push notifications disabled, not sending %r", title)
            return False

        message = messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            # FCM data payloads must be string → string
            data={key: str(value) for key, value in data.items()},
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default", badge=1)),
            ),
        )
        try:
            messaging.send(message, app=get_firebase_app())
        except Exception:
            logger.exception("FCM send failed for notification %r", title)
            return False
        return True


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class NotificationService:
    """Looks up recipients in Supabase and hands pushes to a PushSender."""

    def __init__(self, db: Client, sender: PushSender) -> None:
        self._db = db
        self._sender = sender

    async def notify_counsellors_of_request(
        self, request_id: str, request: SupportRequest
    ) -> int:
        """Notify about a new support request. Returns pushes sent."""
        try:
            logger.info("New support request created: %s", request_id)
            requester = await self._get_user(request.user_id)
            user_name = _display_name(requester, "A user")
            data = {
                "type": "support_request",
                "requestId": request_id,
                "userId": request.user_id,
            }

            if request.counsellor_id:
                counsellor = await self._get_user(request.counsellor_id)
                if counsellor is None:
                    logger.warning("Counsellor %s not found", request.counsellor_id)
                    return 0
                token = counsellor.get("fcm_token")
                if not token:
                    logger.warning("No FCM token for counsellor %s", request.counsellor_id)
                    return 0
                sent = await self._send(
                    token,
                    "New Support Request",
                    f"{user_name} has requested your support",
                    data,
                )
                if sent:
                    logger.info("Notification sent to counsellor %s", request.counsellor_id)
                return int(sent)

            counsellor_ids = await self._available_counsellor_ids()
            if not counsellor_ids:
                logger.warning("No available counsellors found")
                return 0

            results = await asyncio.gather(
                *(
                    self._notify_counsellor(counsellor_id, user_name, data)
                    for counsellor_id in counsellor_ids
                )
            )
            sent_count = sum(results)
            logger.info(
                "Notifications sent to %d of %d available counsellors",
                sent_count,
                len(counsellor_ids),
            )
            return sent_count
        except Exception:
            logger.exception("Error sending counsellor notification")
            return 0

    async def notify_user_of_acceptance(
        self,
        request_id: str,
        before: Optional[SupportRequest],
        after: SupportRequest,
    ) -> bool:
        """Tell the requester their request was accepted (transition only)."""
        previous_status = before.status if before else None
        if previous_status == "accepted" or after.status != "accepted":
            return False

        try:
            logger.info(
                "Support request %s was accepted by counsellor %s",
                request_id,
                after.counsellor_id,
            )
            user = await self._get_user(after.user_id)
            if user is None:
                logger.warning("User %s not found", after.user_id)
                return False
            token = user.get("fcm_token")
            if not token:
                logger.warning("No FCM token for user %s", after.user_id)
                return False

            counsellor = (
                await self._get_user(after.counsellor_id) if after.counsellor_id else None
            )
            counsellor_name = _display_name(counsellor, "A counsellor")

            sent = await self._send(
                token,
                "Support Request Accepted",
                f"{counsellor_name} has accepted your support request",
                {
                    "type": "request_accepted",
                    "requestId": request_id,
                    "counsellorId": after.counsellor_id or "",
                },
            )
            if sent:
                logger.info("Notification sent to user %s", after.user_id)
            return sent
        except Exception:
            logger.exception("Error sending user notification")
            return False

    async def notify_message_receiver(self, thread_id: str, message: ChatMessage) -> bool:
        """Push a preview of a new chat message to its receiver."""
        try:
            logger.info("New message in thread %s", thread_id)
            receiver = await self._get_user(message.receiver_id)
            if receiver is None:
                logger.warning("Receiver %s not found", message.receiver_id)
                return False
            token = receiver.get("fcm_token")
            if not token:
                logger.warning("No FCM token for receiver %s", message.receiver_id)
                return False

            sender = await self._get_user(message.sender_id)
            sender_name = _display_name(sender, "Someone")

            sent = await self._send(
                token,
                f"New message from {sender_name}",
                message.content[:MESSAGE_PREVIEW_CHARS],
                {
                    "type": "new_message",
                    "threadId": thread_id,
                    "senderId": message.sender_id,
                },
            )
            if sent:
                logger.info("Message notification sent to %s", message.receiver_id)
            return sent
        except Exception:
            logger.exception("Error sending message notification")
            return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _notify_counsellor(
        self, counsellor_id: str, user_name: str, data: dict[str, str]
    ) -> bool:
        # One counsellor's failure must not cancel the rest of the fan-out.
        try:
            counsellor = await self._get_user(counsellor_id)
            if counsellor is None:
                return False
            token = counsellor.get("fcm_token")
            if not token:
                logger.warning("No FCM token for counsellor %s", counsellor_id)
                return False
            return await self._send(
                token, "New Support Request", f"{user_name} needs support", data
            )
        except Exception:
            logger.exception("Error notifying counsellor %s", counsellor_id)
            return False

    async def _send(self, token: str, title: str, body: str, data: dict[str, str]) -> bool:
        return await asyncio.to_thread(self._sender.send, token, title, body, data)

    async def _get_user(self, user_id: str) -> Optional[dict]:
        result = await asyncio.to_thread(
            lambda: self._db.table("users")
            .select("*")
            .eq("id", user_id)
            .maybe_single()
            .execute()
        )
        if result is None or not result.data:
            return None
        return result.data

    async def _available_counsellor_ids(self) -> list[str]:
        result = await asyncio.to_thread(
            lambda: self._db.table("counsellors")
            .select("id")
            .eq("status", "available")
            .execute()
        )
        return [row["id"] for row in (result.data or [])]


def _display_name(user: Optional[dict], default: str) -> str:
    if not user:
        return default
    return user.get("name") or default
