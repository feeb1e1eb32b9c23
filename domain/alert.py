"""
Domain: Aging alert policy and alert events.

Rules implemented here:
- Alerts fire only at fixed checkpoints expressed as days before the attention
  threshold (NEEDS_ATTENTION_FROM_DAY = 45):
  - day 38 (7 days before)  -> 7_DAY_WARNING
  - day 44 (1 day before)   -> 1_DAY_WARNING
- The decision depends only on the computed elapsed days and last_alert_at, so
  it is the same no matter how often a pass runs.
- A checkpoint window opens at intake_at + checkpoint day. An alert is due when
  no alert has been recorded inside the current window, i.e. last_alert_at is
  NULL or earlier than the window start. Resetting intake_at opens a new window.
- AlertEvent records are created once and never mutated.

Entering OBSOLETE (day 45) or SURPLUS (day 90) is not a checkpoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional, Tuple

from .aging import NEEDS_ATTENTION_FROM_DAY, AgingBucket, AgingClassification
from .inventory_item import InventoryItem
from .time import require_utc_timestamp


class AlertTrigger(str, Enum):
    SEVEN_DAY_WARNING = "7_DAY_WARNING"
    ONE_DAY_WARNING = "1_DAY_WARNING"


@dataclass(frozen=True, slots=True)
class AlertCheckpoint:
    """An elapsed-day value at which an alert is due."""

    days_before_attention: int
    trigger: AlertTrigger

    @property
    def day(self) -> int:
        return NEEDS_ATTENTION_FROM_DAY - self.days_before_attention


ALERT_CHECKPOINTS: Tuple[AlertCheckpoint, ...] = (
    AlertCheckpoint(days_before_attention=7, trigger=AlertTrigger.SEVEN_DAY_WARNING),
    AlertCheckpoint(days_before_attention=1, trigger=AlertTrigger.ONE_DAY_WARNING),
)

_CHECKPOINTS_BY_DAY: Dict[int, AlertCheckpoint] = {cp.day: cp for cp in ALERT_CHECKPOINTS}


def checkpoint_for(elapsed_days: int) -> Optional[AlertCheckpoint]:
    """Return the checkpoint falling exactly on elapsed_days, if any."""

    return _CHECKPOINTS_BY_DAY.get(elapsed_days)


def checkpoint_window_start(intake_at: datetime, checkpoint: AlertCheckpoint) -> datetime:
    """Instant at which the item reached the checkpoint day."""

    require_utc_timestamp("intake_at", intake_at)
    return intake_at + timedelta(days=checkpoint.day)


def due_checkpoint(item: InventoryItem, classification: AgingClassification) -> Optional[AlertCheckpoint]:
    """
    Return the checkpoint an alert is due for, or None.

    Due when a checkpoint matches the computed elapsed days and the item has
    not been alerted since that checkpoint's window opened.
    """

    checkpoint = checkpoint_for(classification.elapsed_days)
    if checkpoint is None or item.intake_at is None:
        return None

    if item.last_alert_at is None:
        return checkpoint
    if item.last_alert_at < checkpoint_window_start(item.intake_at, checkpoint):
        return checkpoint
    return None


def is_alert_due(item: InventoryItem, classification: AgingClassification) -> bool:
    return due_checkpoint(item, classification) is not None


@dataclass(frozen=True, slots=True)
class AlertEvent:
    """
    Immutable record of one alert for one item in one pass.

    Consumed by the notification sink; never mutated after creation.
    """

    item_id: str
    bucket: AgingBucket
    elapsed_days: int
    trigger: AlertTrigger
    emitted_at: datetime
    serial: str = ""
    product_id: str = ""
    product_name: str = ""

    def __post_init__(self) -> None:
        require_utc_timestamp("emitted_at", self.emitted_at)

    @property
    def days_until_attention(self) -> int:
        return max(0, NEEDS_ATTENTION_FROM_DAY - self.elapsed_days)


def alert_title(event: AlertEvent) -> str:
    return f"Inventory Aging Alert: {event.product_name} - {event.serial}"


def alert_message(event: AlertEvent, intake_at: datetime) -> str:
    """Human-readable notification body."""

    days_left = event.days_until_attention
    day_word = "day" if days_left == 1 else "days"
    return (
        f"Serial {event.serial} of {event.product_name} has been in inventory for "
        f"{event.elapsed_days} days (since {intake_at.date().isoformat()}). "
        f"It will be classified as {AgingBucket.OBSOLETE.value.title()} in "
        f"{days_left} {day_word}."
    )


__all__ = [
    "ALERT_CHECKPOINTS",
    "AlertCheckpoint",
    "AlertEvent",
    "AlertTrigger",
    "alert_message",
    "alert_title",
    "checkpoint_for",
    "checkpoint_window_start",
    "due_checkpoint",
    "is_alert_due",
]
