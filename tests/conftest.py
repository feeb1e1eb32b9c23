"""
Pytest configuration and shared fixtures.

This file adds the project root to the Python path so that tests can import
from the domain, repositories, services and api modules, and provides
in-memory stand-ins for the persistence and notification collaborators.
"""

from __future__ import annotations

import sys
import threading
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.aging import AgingBucket  # noqa: E402
from domain.alert import AlertEvent  # noqa: E402
from domain.inventory_item import InventoryItem, StockStatus  # noqa: E402

NOW = datetime(2025, 3, 1, 1, 0, 0, tzinfo=timezone.utc)


def make_item(
    item_id: str = "sn-1",
    *,
    days_in_stock: Optional[int] = 0,
    now: datetime = NOW,
    status: StockStatus = StockStatus.IN_STOCK,
    stored_bucket: Optional[AgingBucket] = None,
    needs_attention: bool = False,
    last_alert_at: Optional[datetime] = None,
) -> InventoryItem:
    """Build an item that has been in stock for `days_in_stock` days at `now`."""

    return InventoryItem(
        item_id=item_id,
        serial=f"SER-{item_id}",
        product_id="prod-1",
        product_name="HP LaserJet Pro M404n",
        status=status,
        intake_at=now - timedelta(days=days_in_stock) if days_in_stock is not None else None,
        stored_bucket=stored_bucket,
        needs_attention=needs_attention,
        last_alert_at=last_alert_at,
    )


class InMemoryAgingStore:
    """
    AgingStore over a dict of items.

    claim_alert behaves like the conditional database update: it only succeeds
    while last_alert_at still equals the value the caller read.
    """

    def __init__(self, items: Iterable[InventoryItem] = ()) -> None:
        self.items: Dict[str, InventoryItem] = {item.item_id: item for item in items}
        self.fail_claims_for: Set[str] = set()
        self.fail_refresh_for: Set[str] = set()
        self.fail_listing = False
        self.claim_calls: List[str] = []
        self.refresh_calls: List[str] = []
        self._lock = threading.Lock()

    def list_alert_candidates(self) -> List[InventoryItem]:
        if self.fail_listing:
            raise RuntimeError("database unreachable")
        return list(self.items.values())

    def claim_alert(
        self,
        item_id: str,
        expected_last_alert_at: Optional[datetime],
        alerted_at: datetime,
        bucket: AgingBucket,
        needs_attention: bool,
    ) -> bool:
        with self._lock:
            self.claim_calls.append(item_id)
            if item_id in self.fail_claims_for:
                raise RuntimeError(f"write failed for {item_id}")
            current = self.items[item_id]
            if current.last_alert_at != expected_last_alert_at:
                return False
            self.items[item_id] = replace(
                current,
                last_alert_at=alerted_at,
                stored_bucket=bucket,
                needs_attention=needs_attention,
            )
            return True

    def refresh_aging_state(self, item_id: str, bucket: AgingBucket, needs_attention: bool) -> None:
        with self._lock:
            self.refresh_calls.append(item_id)
            if item_id in self.fail_refresh_for:
                raise RuntimeError(f"write failed for {item_id}")
            self.items[item_id] = replace(
                self.items[item_id],
                stored_bucket=bucket,
                needs_attention=needs_attention,
            )


class RecordingSink:
    """NotificationSink that records what it was asked to publish."""

    def __init__(self) -> None:
        self.published: List[AlertEvent] = []
        self.fail_for: Set[str] = set()
        self._lock = threading.Lock()

    def publish(self, event: AlertEvent, item: InventoryItem) -> None:
        if event.item_id in self.fail_for:
            raise RuntimeError(f"notification failed for {event.item_id}")
        with self._lock:
            self.published.append(event)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
