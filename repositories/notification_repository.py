"""
Notification repository (persistence).

This module provides *only* persistence operations for in-app notifications:
inserting a notification row, linking it to its recipients, and resolving the
recipient directory. Delivery (push/email) happens elsewhere.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, List, Optional
from uuid import uuid4

from domain.alert import AlertEvent, alert_message, alert_title
from domain.inventory_item import InventoryItem
from repositories.client import get_supabase

logger = logging.getLogger(__name__)

# Supabase table names.
# Keep these aligned with your database schema.
_NOTIFICATIONS_TABLE: str = "notifications"
_RECIPIENTS_TABLE: str = "notification_recipients"
_USERS_TABLE: str = "users"

STOCK_ALERT_TYPE: str = "STOCK_ALERT"
SYSTEM_SENDER_ID: str = "system"


def list_recipient_ids() -> List[str]:
    """Return the ids of every registered user."""

    response = get_supabase().table(_USERS_TABLE).select("id").execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to fetch notification recipients: {error}")

    rows = getattr(response, "data", None) or []
    return [str(row["id"]) for row in rows]


def create_notification(
    *,
    title: str,
    message: str,
    product_id: str,
    recipient_ids: Iterable[str],
    notification_type: str = STOCK_ALERT_TYPE,
    sent_by_id: str = SYSTEM_SENDER_ID,
) -> str:
    """
    Insert a notification and its recipient links.

    Returns:
        The new notification id.
    """

    supabase = get_supabase()
    notification_id = str(uuid4())

    payload: dict[str, Any] = {
        "id": notification_id,
        "title": title,
        "message": message,
        "product_id": product_id,
        "sent_by_id": sent_by_id,
        "type": notification_type,
    }

    response = supabase.table(_NOTIFICATIONS_TABLE).insert(payload).execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to create notification: {error}")

    links = [{"notification_id": notification_id, "user_id": user_id} for user_id in recipient_ids]
    if links:
        link_response = supabase.table(_RECIPIENTS_TABLE).insert(links).execute()
        link_error = getattr(link_response, "error", None)
        if link_error:
            raise RuntimeError(f"Failed to link notification recipients: {link_error}")

    return notification_id


class SupabaseNotificationSink:
    """
    NotificationSink that stores one STOCK_ALERT notification per event and
    broadcasts it to every registered user.

    The recipient list is resolved once per sink instance; build a new sink
    per pass.
    """

    def __init__(self) -> None:
        self._recipient_ids: Optional[List[str]] = None
        self._lock = threading.Lock()

    def _recipients(self) -> List[str]:
        with self._lock:
            if self._recipient_ids is None:
                self._recipient_ids = list_recipient_ids()
            return self._recipient_ids

    def publish(self, event: AlertEvent, item: InventoryItem) -> None:
        if item.intake_at is None:
            raise ValueError("Cannot describe an alert for an item without intake_at")

        notification_id = create_notification(
            title=alert_title(event),
            message=alert_message(event, item.intake_at),
            product_id=event.product_id,
            recipient_ids=self._recipients(),
        )
        logger.info(
            "Aging alert notification created",
            extra={
                "notification_id": notification_id,
                "item_id": event.item_id,
                "trigger": event.trigger.value,
            },
        )


__all__ = [
    "STOCK_ALERT_TYPE",
    "SupabaseNotificationSink",
    "create_notification",
    "list_recipient_ids",
]
