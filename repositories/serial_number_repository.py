"""
Serial number repository (persistence).

This module provides *only* persistence operations for serial-numbered
inventory items. It contains no aging or alerting rules; it reads item
snapshots and applies the narrow writes the alert pass needs: the stored aging
bucket, the needs-attention flag and the last-alert timestamp.

The alert claim is a conditional update keyed on the last-alert timestamp the
caller read, so two concurrent passes cannot both record an alert for the same
checkpoint.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

import config
from domain.aging import AgingBucket
from domain.inventory_item import InventoryItem, StockStatus
from domain.time import require_utc_timestamp
from repositories.client import get_supabase

logger = logging.getLogger(__name__)

# Supabase table name for serial numbers.
# Keep this aligned with your database schema.
_SERIAL_NUMBERS_TABLE: str = "serial_numbers"

_SELECT_COLUMNS: str = (
    "id, serial, product_id, status, inventory_date_utc, aging_status, "
    "needs_attention, last_alert_sent_utc, products(name)"
)


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_optional_datetime(value: Any) -> Optional[datetime]:
    return _parse_utc_datetime(value) if value is not None else None


def _parse_stored_bucket(item_id: str, value: Any) -> Optional[AgingBucket]:
    """
    Parse the cached aging_status column.

    Unknown values (e.g. legacy FRESH / STALE labels) map to None so the next
    pass recomputes and overwrites them.
    """

    if not value:
        return None
    try:
        return AgingBucket(str(value))
    except ValueError:
        logger.warning(
            f"Ignoring unrecognized aging_status {value!r} on serial number {item_id}",
            extra={"item_id": item_id, "aging_status": str(value)},
        )
        return None


def _row_to_item(row: Mapping[str, Any]) -> InventoryItem:
    """Convert a Supabase row (with embedded product) into an InventoryItem."""

    product = row.get("products") or {}
    item_id = str(row["id"])
    return InventoryItem(
        item_id=item_id,
        serial=str(row["serial"]),
        product_id=str(row["product_id"]),
        product_name=str(product.get("name", "")),
        status=StockStatus(str(row["status"])),
        intake_at=_parse_optional_datetime(row.get("inventory_date_utc")),
        stored_bucket=_parse_stored_bucket(item_id, row.get("aging_status")),
        needs_attention=bool(row.get("needs_attention", False)),
        last_alert_at=_parse_optional_datetime(row.get("last_alert_sent_utc")),
    )


def _fetch_pages(*, in_stock_only: bool, page_size: int) -> List[InventoryItem]:
    supabase = get_supabase()
    items: List[InventoryItem] = []
    offset = 0

    while True:
        query = supabase.table(_SERIAL_NUMBERS_TABLE).select(_SELECT_COLUMNS)
        if in_stock_only:
            query = query.eq("status", StockStatus.IN_STOCK.value).not_.is_("inventory_date_utc", "null")

        response = query.order("id").range(offset, offset + page_size - 1).execute()
        error = getattr(response, "error", None)
        if error:
            raise RuntimeError(f"Failed to fetch serial numbers: {error}")

        rows = getattr(response, "data", None) or []
        items.extend(_row_to_item(row) for row in rows)
        if len(rows) < page_size:
            return items
        offset += len(rows)


def list_in_stock_serial_numbers(page_size: Optional[int] = None) -> List[InventoryItem]:
    """
    Fetch every IN_STOCK serial number that has an intake date.

    Returns:
    - List[InventoryItem] (possibly empty)
    """

    return _fetch_pages(in_stock_only=True, page_size=page_size or config.SUPABASE_PAGE_SIZE)


def list_serial_numbers(page_size: Optional[int] = None) -> List[InventoryItem]:
    """Fetch every serial number regardless of status (used by aging reports)."""

    return _fetch_pages(in_stock_only=False, page_size=page_size or config.SUPABASE_PAGE_SIZE)


def claim_alert(
    item_id: str,
    expected_last_alert_at: Optional[datetime],
    alerted_at: datetime,
    bucket: AgingBucket,
    needs_attention: bool,
) -> bool:
    """
    Record an alert for an item if nobody else has since it was read.

    Requirements:
    - Must only update if last_alert_sent_utc still equals expected_last_alert_at
      (or is still NULL when nothing was read).

    Returns:
    - True if this call recorded the alert, False if the row changed underneath.
    """

    update_payload: dict[str, Any] = {
        "last_alert_sent_utc": _to_iso_utc(alerted_at, name="alerted_at"),
        "aging_status": bucket.value,
        "needs_attention": needs_attention,
    }

    query = get_supabase().table(_SERIAL_NUMBERS_TABLE).update(update_payload).eq("id", item_id)
    if expected_last_alert_at is None:
        query = query.is_("last_alert_sent_utc", "null")
    else:
        query = query.eq(
            "last_alert_sent_utc",
            _to_iso_utc(expected_last_alert_at, name="expected_last_alert_at"),
        )

    response = query.execute()
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to record alert for serial number {item_id}: {error}")

    updated_rows = getattr(response, "data", None) or []
    return bool(updated_rows)


def refresh_aging_state(item_id: str, bucket: AgingBucket, needs_attention: bool) -> None:
    """Overwrite the stored aging bucket and needs-attention flag."""

    response = (
        get_supabase()
        .table(_SERIAL_NUMBERS_TABLE)
        .update({"aging_status": bucket.value, "needs_attention": needs_attention})
        .eq("id", item_id)
        .execute()
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to refresh aging state for serial number {item_id}: {error}")


class SupabaseAgingStore:
    """AgingStore backed by the serial_numbers table."""

    def list_alert_candidates(self) -> List[InventoryItem]:
        return list_in_stock_serial_numbers()

    def claim_alert(
        self,
        item_id: str,
        expected_last_alert_at: Optional[datetime],
        alerted_at: datetime,
        bucket: AgingBucket,
        needs_attention: bool,
    ) -> bool:
        return claim_alert(item_id, expected_last_alert_at, alerted_at, bucket, needs_attention)

    def refresh_aging_state(self, item_id: str, bucket: AgingBucket, needs_attention: bool) -> None:
        refresh_aging_state(item_id, bucket, needs_attention)


__all__ = [
    "SupabaseAgingStore",
    "claim_alert",
    "list_in_stock_serial_numbers",
    "list_serial_numbers",
    "refresh_aging_state",
]
