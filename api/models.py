"""
API Request and Response Models.

Pydantic models for serializing alert pass results and aging reports.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from domain.alert import AlertEvent
from services.aging_alert_service import AlertPassResult, ItemFailure
from services.aging_report_service import AgingRow, AgingSummary


# ============================================================================
# Alert Models
# ============================================================================

class AlertEventResponse(BaseModel):
    """Single alert emitted by a pass."""
    item_id: str
    serial: str
    product_id: str
    product_name: str
    bucket: str  # "ACTIVE", "IDLE", "OBSOLETE", "SURPLUS"
    elapsed_days: int
    trigger: str  # "7_DAY_WARNING" or "1_DAY_WARNING"
    emitted_at: datetime

    @classmethod
    def from_event(cls, event: AlertEvent) -> "AlertEventResponse":
        return cls(
            item_id=event.item_id,
            serial=event.serial,
            product_id=event.product_id,
            product_name=event.product_name,
            bucket=event.bucket.value,
            elapsed_days=event.elapsed_days,
            trigger=event.trigger.value,
            emitted_at=event.emitted_at,
        )


class ItemFailureResponse(BaseModel):
    """Per-item failure reported by a pass."""
    item_id: str
    stage: str
    error: str

    @classmethod
    def from_failure(cls, failure: ItemFailure) -> "ItemFailureResponse":
        return cls(item_id=failure.item_id, stage=failure.stage, error=failure.error)


class AlertPassResponse(BaseModel):
    """Response after running an inventory aging alert pass."""
    success: bool
    evaluated_at: datetime
    events_emitted: int
    events: List[AlertEventResponse]
    skipped: int
    failures: int
    suppressed: int
    refreshed: int
    deferred: int
    errors: List[ItemFailureResponse]
    message: Optional[str] = None

    @classmethod
    def from_result(cls, result: AlertPassResult, message: Optional[str] = None) -> "AlertPassResponse":
        return cls(
            success=True,
            evaluated_at=result.evaluated_at,
            events_emitted=result.events_emitted,
            events=[AlertEventResponse.from_event(e) for e in result.events],
            skipped=result.skipped,
            failures=result.failures,
            suppressed=result.suppressed,
            refreshed=result.refreshed,
            deferred=result.deferred,
            errors=[ItemFailureResponse.from_failure(f) for f in result.errors],
            message=message,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "evaluated_at": "2025-03-01T01:00:00Z",
                "events_emitted": 1,
                "events": [
                    {
                        "item_id": "sn-001",
                        "serial": "HP-M404N-0001",
                        "product_id": "prod-001",
                        "product_name": "HP LaserJet Pro M404n",
                        "bucket": "IDLE",
                        "elapsed_days": 38,
                        "trigger": "7_DAY_WARNING",
                        "emitted_at": "2025-03-01T01:00:00Z"
                    }
                ],
                "skipped": 4,
                "failures": 0,
                "suppressed": 0,
                "refreshed": 2,
                "deferred": 0,
                "errors": [],
                "message": None
            }
        }


# ============================================================================
# Aging Report Models
# ============================================================================

class AgingItemResponse(BaseModel):
    """Single serial number in the aging report."""
    item_id: str
    serial: str
    product_id: str
    product_name: str
    status: str
    intake_at: datetime
    bucket: str
    elapsed_days: int
    needs_attention: bool
    stored_bucket: Optional[str] = None
    last_alert_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: AgingRow) -> "AgingItemResponse":
        item = row.item
        return cls(
            item_id=item.item_id,
            serial=item.serial,
            product_id=item.product_id,
            product_name=item.product_name,
            status=item.status.value,
            intake_at=item.intake_at,
            bucket=row.classification.bucket.value,
            elapsed_days=row.classification.elapsed_days,
            needs_attention=row.classification.needs_attention,
            stored_bucket=item.stored_bucket.value if item.stored_bucket else None,
            last_alert_at=item.last_alert_at,
        )


class AgingListResponse(BaseModel):
    """Response for the aging report listing."""
    items: List[AgingItemResponse]
    total_count: int
    filters_applied: dict

    class Config:
        json_schema_extra = {
            "example": {
                "items": [],
                "total_count": 42,
                "filters_applied": {
                    "bucket": "OBSOLETE",
                    "sort_by": "days"
                }
            }
        }


class AgingSummaryResponse(BaseModel):
    """Aging counts per bucket."""
    total: int
    in_stock: int
    by_bucket: Dict[str, int]
    needs_attention: int
    without_intake_date: int

    @classmethod
    def from_summary(cls, summary: AgingSummary) -> "AgingSummaryResponse":
        return cls(
            total=summary.total,
            in_stock=summary.in_stock,
            by_bucket={bucket.value: count for bucket, count in summary.by_bucket.items()},
            needs_attention=summary.needs_attention,
            without_intake_date=summary.without_intake_date,
        )


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int

    class Config:
        json_schema_extra = {
            "example": {
                "error": "Alert pass failed",
                "detail": "Failed to list aging alert candidates",
                "status_code": 500
            }
        }
