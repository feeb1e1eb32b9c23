"""
FastAPI dependency providers.

Routers receive their collaborators through these functions so tests can swap
them with `app.dependency_overrides`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List

from domain.inventory_item import InventoryItem
from domain.time import utc_now
from repositories.notification_repository import SupabaseNotificationSink
from repositories.serial_number_repository import SupabaseAgingStore, list_serial_numbers
from services.aging_alert_service import AgingStore, NotificationSink


def get_aging_store() -> AgingStore:
    """FastAPI dependency for the serial number aging store"""
    return SupabaseAgingStore()


def get_notification_sink() -> NotificationSink:
    """FastAPI dependency for the notification sink (one per request)"""
    return SupabaseNotificationSink()


def get_item_loader() -> Callable[[], List[InventoryItem]]:
    """FastAPI dependency returning a loader for every serial number"""
    return list_serial_numbers


def get_clock() -> Callable[[], datetime]:
    """FastAPI dependency returning the wall clock"""
    return utc_now
