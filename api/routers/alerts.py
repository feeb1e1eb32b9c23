"""
Alerts API Endpoints.

Endpoints that trigger an inventory aging alert pass.
"""

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_aging_store, get_clock, get_notification_sink
from api.models import AlertPassResponse, ErrorResponse
from services.aging_alert_service import (
    AgingStore,
    AlertPassError,
    NotificationSink,
    run_scheduled_pass,
)

router = APIRouter()


def _run_pass(store: AgingStore, sink: NotificationSink, clock: Callable[[], datetime]):
    try:
        return run_scheduled_pass(store, sink, now=clock())
    except AlertPassError as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to process inventory aging alerts: {str(e)}"
        )


@router.post(
    "/alerts/inventory-aging",
    response_model=AlertPassResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Run Inventory Aging Alert Pass",
    description="Classify every in-stock serial number and emit due aging alerts."
)
def run_inventory_aging_alerts(
    store: AgingStore = Depends(get_aging_store),
    sink: NotificationSink = Depends(get_notification_sink),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Run one inventory aging alert pass.

    **Process:**
    1. Loads every IN_STOCK serial number with an intake date
    2. Classifies each one (ACTIVE, IDLE, OBSOLETE, SURPLUS) at a single instant
    3. Emits a 7_DAY_WARNING on day 38 and a 1_DAY_WARNING on day 44
    4. Refreshes the stored aging bucket and needs-attention flag

    **Idempotent:**
    Calling again within the same checkpoint window emits nothing new.

    **Partial failures:**
    Items that fail are listed in `errors`; the response is still 200.
    Only a failure to load candidates returns 500.
    """
    result = _run_pass(store, sink, clock)
    return AlertPassResponse.from_result(result)


@router.get(
    "/alerts/check",
    response_model=AlertPassResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Check Inventory Aging Alerts",
    description="Cron-friendly trigger for the inventory aging alert pass."
)
def check_alerts(
    store: AgingStore = Depends(get_aging_store),
    sink: NotificationSink = Depends(get_notification_sink),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Same pass as `POST /alerts/inventory-aging`, reachable with a plain GET so
    schedulers that only issue GET requests can trigger it.
    """
    result = _run_pass(store, sink, clock)
    return AlertPassResponse.from_result(
        result,
        message="Inventory aging alerts checked successfully",
    )
