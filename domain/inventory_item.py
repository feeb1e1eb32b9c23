"""
Domain: Serially-tracked inventory item.

Rules implemented here:
- An item is identified by item_id and carries its serial and product identity.
- intake_at is the instant the item entered stock; it is set outside this core.
  Items without it cannot be aged.
- Only IN_STOCK items are evaluated for aging and alerting.
- stored_bucket / needs_attention are the last values written by an alert pass.
  They are a cache of derived state and never an input to a decision; the
  authoritative classification is always recomputed from intake_at and now.
- last_alert_at is written only by the alert pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .aging import AgingBucket
from .time import require_utc_timestamp


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    RESERVED = "RESERVED"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    IN_TRANSIT = "IN_TRANSIT"
    DAMAGED = "DAMAGED"
    LOST = "LOST"


@dataclass(frozen=True, slots=True)
class InventoryItem:
    """
    Snapshot of one serial-numbered item as read from persistence.

    Immutability:
    - The alert pass never mutates an item; it writes updates through the store
      and works from the snapshot it read.
    """

    item_id: str
    serial: str
    product_id: str
    product_name: str
    status: StockStatus
    intake_at: Optional[datetime] = None
    stored_bucket: Optional[AgingBucket] = None
    needs_attention: bool = False
    last_alert_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.intake_at is not None:
            require_utc_timestamp("intake_at", self.intake_at)
        if self.last_alert_at is not None:
            require_utc_timestamp("last_alert_at", self.last_alert_at)

    @property
    def is_in_stock(self) -> bool:
        return self.status is StockStatus.IN_STOCK

    @property
    def is_aging_eligible(self) -> bool:
        """Only in-stock items with a known intake instant are aged."""

        return self.is_in_stock and self.intake_at is not None
