"""
Inventory aging alert service.

Runs one alert pass over in-stock serial numbers:
- Classifies every item against a single `now` for the whole pass
- Emits at most one AlertEvent per item per checkpoint (7-day and 1-day warnings)
- Refreshes the stored aging bucket / needs-attention cache for everything else

Key Features:
- Idempotent: repeating a pass with the same `now` emits nothing new
- Race-safe: alerts are recorded with a conditional update (optimistic claim)
- Partial failure tolerant: one item's error never aborts the pass
- Bounded parallelism with an optional overall deadline
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Protocol

import config
from domain.aging import AgingBucket, AgingClassificationError, classify
from domain.alert import AlertEvent, checkpoint_for, due_checkpoint
from domain.inventory_item import InventoryItem
from domain.time import require_utc_timestamp, utc_now

logger = logging.getLogger(__name__)


class AgingStore(Protocol):
    """Persistence collaborator: read candidates, write the four aging fields."""

    def list_alert_candidates(self) -> List[InventoryItem]:
        ...

    def claim_alert(
        self,
        item_id: str,
        expected_last_alert_at: Optional[datetime],
        alerted_at: datetime,
        bucket: AgingBucket,
        needs_attention: bool,
    ) -> bool:
        ...

    def refresh_aging_state(self, item_id: str, bucket: AgingBucket, needs_attention: bool) -> None:
        ...


class NotificationSink(Protocol):
    """Receives one request per emitted alert; resolves its own recipients."""

    def publish(self, event: AlertEvent, item: InventoryItem) -> None:
        ...


class AlertPassError(Exception):
    """Raised when a pass cannot run at all (e.g. candidates cannot be listed)."""


class ItemOutcomeKind(str, Enum):
    SKIPPED = "skipped"
    EMITTED = "emitted"
    SUPPRESSED = "suppressed"
    REFRESHED = "refreshed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ItemFailure:
    """A per-item error; stage is one of classify, claim, publish, refresh, evaluate."""
    item_id: str
    stage: str
    error: str


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    item_id: str
    kind: ItemOutcomeKind
    event: Optional[AlertEvent] = None
    failure: Optional[ItemFailure] = None


@dataclass(frozen=True, slots=True)
class AlertPassResult:
    """
    Result of one alert pass.

    events: alerts emitted in this pass, in candidate order (including alerts
        whose notification failed)
    skipped: items not in stock or without an intake date
    failures: per-item errors (details in `errors`)
    suppressed: items at a checkpoint that was already alerted
    refreshed: items whose stored aging state was rewritten
    deferred: items not processed before the deadline
    """
    evaluated_at: datetime
    evaluated: int
    events: List[AlertEvent] = field(default_factory=list)
    skipped: int = 0
    failures: int = 0
    suppressed: int = 0
    refreshed: int = 0
    deferred: int = 0
    errors: List[ItemFailure] = field(default_factory=list)

    @property
    def events_emitted(self) -> int:
        return len(self.events)


def _failed(item: InventoryItem, stage: str, exc: BaseException) -> ItemOutcome:
    logger.warning(
        f"Aging alert processing failed for item {item.item_id} during {stage}: {exc}",
        extra={"item_id": item.item_id, "stage": stage, "error": str(exc)},
    )
    return ItemOutcome(
        item_id=item.item_id,
        kind=ItemOutcomeKind.FAILED,
        failure=ItemFailure(item_id=item.item_id, stage=stage, error=str(exc)),
    )


def evaluate_item(
    item: InventoryItem,
    now: datetime,
    store: AgingStore,
    sink: Optional[NotificationSink] = None,
) -> ItemOutcome:
    """
    Classify one item, decide whether an alert is due, and write the result.

    Stored aging fields on `item` are only compared against the computed
    classification to avoid redundant writes; they never drive the decision.
    """

    if not item.is_aging_eligible or item.intake_at is None:
        return ItemOutcome(item_id=item.item_id, kind=ItemOutcomeKind.SKIPPED)

    try:
        classification = classify(item.intake_at, now)
    except AgingClassificationError as exc:
        return _failed(item, "classify", exc)

    if item.stored_bucket is not None and item.stored_bucket.rank > classification.bucket.rank:
        logger.info(
            f"Item {item.item_id} moved back from {item.stored_bucket.value} to {classification.bucket.value}",
            extra={"item_id": item.item_id, "elapsed_days": classification.elapsed_days},
        )

    at_checkpoint = checkpoint_for(classification.elapsed_days) is not None
    checkpoint = due_checkpoint(item, classification)
    if checkpoint is not None:
        try:
            claimed = store.claim_alert(
                item.item_id,
                item.last_alert_at,
                now,
                classification.bucket,
                classification.needs_attention,
            )
        except Exception as exc:
            return _failed(item, "claim", exc)

        if not claimed:
            # Another pass recorded an alert for this item since it was read.
            return ItemOutcome(item_id=item.item_id, kind=ItemOutcomeKind.SUPPRESSED)

        event = AlertEvent(
            item_id=item.item_id,
            bucket=classification.bucket,
            elapsed_days=classification.elapsed_days,
            trigger=checkpoint.trigger,
            emitted_at=now,
            serial=item.serial,
            product_id=item.product_id,
            product_name=item.product_name,
        )

        failure: Optional[ItemFailure] = None
        if sink is not None:
            try:
                sink.publish(event, item)
            except Exception as exc:
                # The alert is already recorded; report it with the delivery error.
                failure = _failed(item, "publish", exc).failure

        return ItemOutcome(item_id=item.item_id, kind=ItemOutcomeKind.EMITTED, event=event, failure=failure)

    kind = ItemOutcomeKind.SUPPRESSED if at_checkpoint else ItemOutcomeKind.UNCHANGED

    if item.stored_bucket != classification.bucket or item.needs_attention != classification.needs_attention:
        try:
            store.refresh_aging_state(item.item_id, classification.bucket, classification.needs_attention)
        except Exception as exc:
            return _failed(item, "refresh", exc)
        if kind is ItemOutcomeKind.UNCHANGED:
            kind = ItemOutcomeKind.REFRESHED

    return ItemOutcome(item_id=item.item_id, kind=kind)


def _evaluate_safely(
    item: InventoryItem,
    now: datetime,
    store: AgingStore,
    sink: Optional[NotificationSink],
) -> ItemOutcome:
    try:
        return evaluate_item(item, now, store, sink)
    except Exception as exc:
        return _failed(item, "evaluate", exc)


def _summarize(now: datetime, outcomes: List[Optional[ItemOutcome]]) -> AlertPassResult:
    events: List[AlertEvent] = []
    errors: List[ItemFailure] = []
    counts = {kind: 0 for kind in ItemOutcomeKind}
    deferred = 0

    for outcome in outcomes:
        if outcome is None:
            deferred += 1
            continue
        counts[outcome.kind] += 1
        if outcome.event is not None:
            events.append(outcome.event)
        if outcome.failure is not None:
            errors.append(outcome.failure)

    return AlertPassResult(
        evaluated_at=now,
        evaluated=len(outcomes) - deferred,
        events=events,
        skipped=counts[ItemOutcomeKind.SKIPPED],
        failures=len(errors),
        suppressed=counts[ItemOutcomeKind.SUPPRESSED],
        refreshed=counts[ItemOutcomeKind.REFRESHED],
        deferred=deferred,
        errors=errors,
    )


def run_alert_pass(
    candidate_items: Iterable[InventoryItem],
    now: datetime,
    *,
    store: AgingStore,
    sink: Optional[NotificationSink] = None,
    max_workers: Optional[int] = None,
    deadline_seconds: Optional[float] = None,
) -> AlertPassResult:
    """
    Run one alert pass over `candidate_items`, all evaluated at `now`.

    Items are processed independently on a bounded thread pool. A failure for
    one item is recorded in the result and never raised. When
    `deadline_seconds` elapses, items still pending are dropped from this pass
    (counted as deferred); the next pass picks them up.

    Args:
        candidate_items: Item snapshots read from persistence
        now: UTC instant used for every classification in this pass
        store: Persistence collaborator for the aging fields
        sink: Notification collaborator (None to skip publishing)
        max_workers: Worker threads (default: config.ALERT_MAX_WORKERS)
        deadline_seconds: Optional overall deadline for the pass

    Returns:
        AlertPassResult with events in candidate order and per-item errors
    """

    require_utc_timestamp("now", now)
    items = list(candidate_items)
    outcomes: List[Optional[ItemOutcome]] = [None] * len(items)

    executor = ThreadPoolExecutor(
        max_workers=max_workers or config.ALERT_MAX_WORKERS,
        thread_name_prefix="aging-alert",
    )
    futures = {
        executor.submit(_evaluate_safely, item, now, store, sink): index
        for index, item in enumerate(items)
    }
    timed_out = False
    try:
        for future in as_completed(futures, timeout=deadline_seconds):
            outcomes[futures[future]] = future.result()
    except FuturesTimeoutError:
        timed_out = True
        # Running workers cannot be cancelled and may still claim and publish.
        in_flight = [items[index].item_id for future, index in futures.items() if future.running()]
        logger.warning(
            f"Aging alert pass hit its {deadline_seconds}s deadline; remaining items deferred, "
            f"still running: {', '.join(in_flight) or 'none'}",
            extra={"deadline_seconds": deadline_seconds, "in_flight_item_ids": in_flight},
        )
    finally:
        executor.shutdown(wait=not timed_out, cancel_futures=timed_out)

    result = _summarize(now, outcomes)
    logger.info(
        f"Aging alert pass complete: {result.events_emitted} emitted, {result.skipped} skipped, "
        f"{result.failures} failed",
        extra={
            "evaluated_at": now.isoformat(),
            "evaluated": result.evaluated,
            "events_emitted": result.events_emitted,
            "skipped": result.skipped,
            "failures": result.failures,
            "suppressed": result.suppressed,
            "refreshed": result.refreshed,
            "deferred": result.deferred,
        },
    )
    return result


def run_scheduled_pass(
    store: AgingStore,
    sink: Optional[NotificationSink] = None,
    now: Optional[datetime] = None,
    *,
    max_workers: Optional[int] = None,
    deadline_seconds: Optional[float] = None,
) -> AlertPassResult:
    """
    Fetch candidates from `store` and run one alert pass.

    `now` defaults to wall-clock UTC; `deadline_seconds` defaults to
    config.ALERT_PASS_DEADLINE_SECONDS.

    Raises:
        AlertPassError: If candidates cannot be listed
    """

    evaluated_at = now or utc_now()

    try:
        candidates = store.list_alert_candidates()
    except Exception as exc:
        logger.exception("Failed to list aging alert candidates")
        raise AlertPassError(f"Failed to list aging alert candidates: {exc}") from exc

    return run_alert_pass(
        candidates,
        evaluated_at,
        store=store,
        sink=sink,
        max_workers=max_workers,
        deadline_seconds=deadline_seconds if deadline_seconds is not None else config.ALERT_PASS_DEADLINE_SECONDS,
    )


__all__ = [
    "AgingStore",
    "AlertPassError",
    "AlertPassResult",
    "ItemFailure",
    "ItemOutcome",
    "ItemOutcomeKind",
    "NotificationSink",
    "evaluate_item",
    "run_alert_pass",
    "run_scheduled_pass",
]
