"""
Inventory Aging API Endpoints.

Endpoints for browsing serial numbers by computed aging bucket.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_clock, get_item_loader
from api.models import AgingItemResponse, AgingListResponse, AgingSummaryResponse
from domain.aging import AgingBucket
from domain.inventory_item import InventoryItem, StockStatus
from services.aging_report_service import SORT_KEYS, build_aging_rows, summarize_aging

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_items(load_items: Callable[[], List[InventoryItem]]) -> List[InventoryItem]:
    try:
        return load_items()
    except Exception as e:
        logger.exception("Failed to load serial numbers for aging report")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to load serial numbers: {str(e)}"
        )


@router.get(
    "/inventory/aging",
    response_model=AgingListResponse,
    summary="Query Inventory Aging",
    description="List serial numbers with their computed aging bucket and days in inventory."
)
def get_inventory_aging(
    bucket: Optional[str] = Query(None, description="Filter by aging bucket (e.g., 'OBSOLETE')"),
    status: Optional[str] = Query(None, description="Filter by stock status (e.g., 'IN_STOCK')"),
    search: Optional[str] = Query(None, description="Match serial or product name"),
    sort_by: str = Query("days", description="Sort by 'days', 'serial', 'product' or 'status'"),
    load_items: Callable[[], List[InventoryItem]] = Depends(get_item_loader),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Query inventory aging with optional filters.

    **Example usage:**
    - Oldest items first: `GET /api/v1/inventory/aging`
    - Only obsolete stock: `GET /api/v1/inventory/aging?bucket=OBSOLETE`
    - Search by serial: `GET /api/v1/inventory/aging?search=HP-M404`
    """
    aging_bucket = None
    if bucket:
        try:
            aging_bucket = AgingBucket(bucket.upper())
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid bucket. Must be one of ACTIVE, IDLE, OBSOLETE, SURPLUS, got '{bucket}'"
            )

    stock_status = None
    if status:
        try:
            stock_status = StockStatus(status.upper())
        except ValueError:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid status. Got '{status}'"
            )

    if sort_by not in SORT_KEYS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid sort_by. Must be one of {', '.join(SORT_KEYS)}, got '{sort_by}'"
        )

    items = _load_items(load_items)
    rows = build_aging_rows(
        items,
        clock(),
        bucket=aging_bucket,
        status=stock_status,
        search=search,
        sort_by=sort_by,
    )

    filters_applied = {"sort_by": sort_by}
    if aging_bucket:
        filters_applied["bucket"] = aging_bucket.value
    if stock_status:
        filters_applied["status"] = stock_status.value
    if search:
        filters_applied["search"] = search

    response_items = [AgingItemResponse.from_row(row) for row in rows]
    return AgingListResponse(
        items=response_items,
        total_count=len(response_items),
        filters_applied=filters_applied
    )


@router.get(
    "/inventory/aging/summary",
    response_model=AgingSummaryResponse,
    summary="Inventory Aging Summary",
    description="Counts of serial numbers per computed aging bucket."
)
def get_inventory_aging_summary(
    load_items: Callable[[], List[InventoryItem]] = Depends(get_item_loader),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Totals, in-stock count, per-bucket counts and items needing attention."""
    items = _load_items(load_items)
    return AgingSummaryResponse.from_summary(summarize_aging(items, clock()))
