"""
Inventory aging report service.

Builds the asset-lifecycle view of serial numbers: per-item computed aging and
overall counts per bucket. Classification is always recomputed from intake
dates at the given `now`; stored aging fields are shown only as-is and never
used to bucket an item.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from domain.aging import AgingBucket, AgingClassification, classify
from domain.inventory_item import InventoryItem, StockStatus

SORT_KEYS = ("days", "serial", "product", "status")


@dataclass(frozen=True, slots=True)
class AgingRow:
    """One serial number with its computed aging at `now`."""
    item: InventoryItem
    classification: AgingClassification


@dataclass(frozen=True, slots=True)
class AgingSummary:
    """Counts shown at the top of the aging report."""
    total: int
    in_stock: int
    by_bucket: Dict[AgingBucket, int] = field(default_factory=dict)
    needs_attention: int = 0
    without_intake_date: int = 0


def build_aging_rows(
    items: Iterable[InventoryItem],
    now: datetime,
    *,
    bucket: Optional[AgingBucket] = None,
    status: Optional[StockStatus] = None,
    search: Optional[str] = None,
    sort_by: str = "days",
) -> List[AgingRow]:
    """
    Classify and filter items for the aging report.

    Items without an intake date cannot be aged and are left out.

    Args:
        items: Item snapshots
        now: UTC instant to classify against
        bucket: Keep only items in this computed bucket
        status: Keep only items with this stock status
        search: Case-insensitive substring of serial or product name
        sort_by: "days" (oldest first), "serial", "product" or "status"

    Raises:
        ValueError: If sort_by is not a known key
    """
    if sort_by not in SORT_KEYS:
        raise ValueError(f"sort_by must be one of {', '.join(SORT_KEYS)}, got '{sort_by}'")

    needle = search.strip().lower() if search else None
    rows: List[AgingRow] = []

    for item in items:
        if item.intake_at is None:
            continue
        if status is not None and item.status is not status:
            continue
        if needle and needle not in item.serial.lower() and needle not in item.product_name.lower():
            continue

        classification = classify(item.intake_at, now)
        if bucket is not None and classification.bucket is not bucket:
            continue
        rows.append(AgingRow(item=item, classification=classification))

    if sort_by == "days":
        rows.sort(key=lambda row: row.classification.elapsed_days, reverse=True)
    elif sort_by == "serial":
        rows.sort(key=lambda row: row.item.serial)
    elif sort_by == "product":
        rows.sort(key=lambda row: row.item.product_name)
    else:
        rows.sort(key=lambda row: row.item.status.value)

    return rows


def summarize_aging(items: Iterable[InventoryItem], now: datetime) -> AgingSummary:
    """
    Count items per computed bucket.

    needs_attention counts computed classifications, not the stored flag.
    """
    total = 0
    in_stock = 0
    without_intake_date = 0
    needs_attention = 0
    by_bucket: Dict[AgingBucket, int] = {b: 0 for b in AgingBucket}

    for item in items:
        total += 1
        if item.is_in_stock:
            in_stock += 1
        if item.intake_at is None:
            without_intake_date += 1
            continue

        classification = classify(item.intake_at, now)
        by_bucket[classification.bucket] += 1
        if classification.needs_attention:
            needs_attention += 1

    return AgingSummary(
        total=total,
        in_stock=in_stock,
        by_bucket=by_bucket,
        needs_attention=needs_attention,
        without_intake_date=without_intake_date,
    )


__all__ = [
    "AgingRow",
    "AgingSummary",
    "SORT_KEYS",
    "build_aging_rows",
    "summarize_aging",
]
