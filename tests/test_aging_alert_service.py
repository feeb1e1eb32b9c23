"""
Tests for `services/aging_alert_service.py`.

Covers alert pass rules:
- Day 38 emits 7_DAY_WARNING, day 44 emits 1_DAY_WARNING, day 45 emits nothing.
- Repeating a pass with the same `now` emits nothing new (no duplicates).
- Items not in stock or without an intake date are skipped.
- A failed write for one item does not stop the others.
- A lost optimistic claim is neither an event nor a failure.
- Stored aging state is refreshed from the computed classification.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta

import pytest

from conftest import NOW, InMemoryAgingStore, RecordingSink, make_item
from domain.aging import AgingBucket
from domain.alert import AlertTrigger
from domain.inventory_item import StockStatus
from services.aging_alert_service import (
    AlertPassError,
    ItemOutcomeKind,
    evaluate_item,
    run_alert_pass,
    run_scheduled_pass,
)


def _run(store: InMemoryAgingStore, sink: RecordingSink, **kwargs):
    return run_alert_pass(store.list_alert_candidates(), NOW, store=store, sink=sink, **kwargs)


def test_day_38_emits_seven_day_warning(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=38)])

    result = _run(store, sink)

    assert result.events_emitted == 1
    event = result.events[0]
    assert event.item_id == "a"
    assert event.trigger == AlertTrigger.SEVEN_DAY_WARNING
    assert event.elapsed_days == 38
    assert event.bucket == AgingBucket.IDLE
    assert event.emitted_at == NOW
    assert sink.published == [event]

    stored = store.items["a"]
    assert stored.last_alert_at == NOW
    assert stored.stored_bucket == AgingBucket.IDLE
    assert stored.needs_attention is False


def test_day_44_emits_one_day_warning(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=44)])

    result = _run(store, sink)

    assert [e.trigger for e in result.events] == [AlertTrigger.ONE_DAY_WARNING]
    assert result.events[0].elapsed_days == 44


def test_day_45_marks_attention_without_alert(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=45)])

    result = _run(store, sink)

    assert result.events_emitted == 0
    assert result.refreshed == 1
    assert store.items["a"].stored_bucket == AgingBucket.OBSOLETE
    assert store.items["a"].needs_attention is True
    assert store.items["a"].last_alert_at is None
    assert store.claim_calls == []


def test_second_pass_with_same_now_emits_nothing(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([
        make_item("a", days_in_stock=38),
        make_item("b", days_in_stock=44),
    ])

    first = _run(store, sink)
    second = _run(store, sink)

    assert first.events_emitted == 2
    assert second.events_emitted == 0
    assert second.suppressed == 2
    assert second.failures == 0
    assert len(sink.published) == 2


def test_later_pass_same_day_emits_nothing(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=38)])
    _run(store, sink)

    later = NOW + timedelta(hours=6)
    result = run_alert_pass(store.list_alert_candidates(), later, store=store, sink=sink)

    assert result.events_emitted == 0


def test_out_of_stock_item_is_skipped(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([
        make_item("gone", days_in_stock=200, status=StockStatus.OUT_OF_STOCK),
        make_item("no-date", days_in_stock=None),
    ])

    result = _run(store, sink)

    assert result.skipped == 2
    assert result.events_emitted == 0
    assert store.claim_calls == []
    assert store.refresh_calls == []
    assert store.items["gone"].stored_bucket is None


def test_write_failure_for_one_item_does_not_stop_others(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([
        make_item("1", days_in_stock=38),
        make_item("2", days_in_stock=38),
        make_item("3", days_in_stock=44),
    ])
    store.fail_claims_for.add("2")

    result = _run(store, sink)

    assert [e.item_id for e in result.events] == ["1", "3"]
    assert result.failures == 1
    assert result.errors[0].item_id == "2"
    assert result.errors[0].stage == "claim"


def test_refresh_failure_is_reported_per_item(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([
        make_item("ok", days_in_stock=38),
        make_item("bad", days_in_stock=60),
    ])
    store.fail_refresh_for.add("bad")

    result = _run(store, sink)

    assert result.events_emitted == 1
    assert result.failures == 1
    assert result.errors[0].stage == "refresh"


def test_publish_failure_still_reports_recorded_alert(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=38)])
    sink.fail_for.add("a")

    result = _run(store, sink)
    assert [(e.item_id, e.trigger) for e in result.events] == [("a", AlertTrigger.SEVEN_DAY_WARNING)]
    assert result.failures == 1
    assert result.errors[0].item_id == "a"
    assert result.errors[0].stage == "publish"
    assert store.items["a"].last_alert_at == NOW

    # The alert was recorded, so the next pass does not retry it.
    again = _run(store, RecordingSink())
    assert again.events_emitted == 0


def test_lost_claim_is_suppressed_not_failed(sink: RecordingSink) -> None:
    item = make_item("a", days_in_stock=38)
    store = InMemoryAgingStore([item])
    # Another pass records the alert after our snapshot was read.
    store.claim_alert("a", None, NOW - timedelta(minutes=1), AgingBucket.IDLE, False)

    outcome = evaluate_item(item, NOW, store, sink)

    assert outcome.kind is ItemOutcomeKind.SUPPRESSED
    assert outcome.event is None
    assert sink.published == []


def test_concurrent_passes_emit_once() -> None:
    store = InMemoryAgingStore([make_item(str(i), days_in_stock=38) for i in range(20)])
    snapshot = store.list_alert_candidates()
    sinks = [RecordingSink(), RecordingSink()]

    threads = [
        threading.Thread(target=run_alert_pass, args=(snapshot, NOW), kwargs={"store": store, "sink": s})
        for s in sinks
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    published = [e.item_id for s in sinks for e in s.published]
    assert sorted(published) == sorted(str(i) for i in range(20))


def test_intake_reset_recomputes_stale_state(sink: RecordingSink) -> None:
    """An item relocated and re-received moves back to ACTIVE and clears attention."""

    item = make_item(
        "a",
        days_in_stock=3,
        stored_bucket=AgingBucket.SURPLUS,
        needs_attention=True,
        last_alert_at=NOW - timedelta(days=100),
    )
    store = InMemoryAgingStore([item])

    result = _run(store, sink)

    assert result.events_emitted == 0
    assert result.refreshed == 1
    assert store.items["a"].stored_bucket == AgingBucket.ACTIVE
    assert store.items["a"].needs_attention is False


def test_unchanged_state_is_not_rewritten(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=10, stored_bucket=AgingBucket.ACTIVE)])

    result = _run(store, sink)

    assert store.refresh_calls == []
    assert result.refreshed == 0
    assert result.evaluated == 1


def test_events_follow_candidate_order(sink: RecordingSink) -> None:
    ids = [f"item-{i:02d}" for i in range(30)]
    store = InMemoryAgingStore([make_item(i, days_in_stock=38) for i in ids])

    result = _run(store, sink, max_workers=8)

    assert [e.item_id for e in result.events] == ids


def test_pass_without_sink_still_records(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=38)])

    result = run_alert_pass(store.list_alert_candidates(), NOW, store=store)

    assert result.events_emitted == 1
    assert store.items["a"].last_alert_at == NOW


def test_deadline_defers_unfinished_items() -> None:
    class SlowStore(InMemoryAgingStore):
        def refresh_aging_state(self, item_id, bucket, needs_attention):
            if item_id == "slow":
                time.sleep(0.5)
            super().refresh_aging_state(item_id, bucket, needs_attention)

    store = SlowStore([make_item("fast", days_in_stock=38), make_item("slow", days_in_stock=60)])

    result = run_alert_pass(
        store.list_alert_candidates(),
        NOW,
        store=store,
        sink=RecordingSink(),
        max_workers=2,
        deadline_seconds=0.1,
    )

    assert result.deferred == 1
    assert [e.item_id for e in result.events] == ["fast"]


def test_deadline_logs_items_still_running(caplog: pytest.LogCaptureFixture) -> None:
    started = threading.Event()

    class SlowStore(InMemoryAgingStore):
        def refresh_aging_state(self, item_id, bucket, needs_attention):
            started.set()
            time.sleep(0.5)
            super().refresh_aging_state(item_id, bucket, needs_attention)

    store = SlowStore([make_item("slow", days_in_stock=60)])
    caplog.set_level(logging.WARNING, logger="services.aging_alert_service")

    result = run_alert_pass(
        store.list_alert_candidates(),
        NOW,
        store=store,
        sink=RecordingSink(),
        max_workers=1,
        deadline_seconds=0.2,
    )

    assert started.is_set()
    assert result.deferred == 1
    records = [r for r in caplog.records if hasattr(r, "in_flight_item_ids")]
    assert len(records) == 1
    assert records[0].in_flight_item_ids == ["slow"]


def test_pass_requires_utc_now(sink: RecordingSink) -> None:
    with pytest.raises(ValueError):
        run_alert_pass([], NOW.replace(tzinfo=None), store=InMemoryAgingStore(), sink=sink)


def test_scheduled_pass_lists_candidates(sink: RecordingSink) -> None:
    store = InMemoryAgingStore([make_item("a", days_in_stock=44)])

    result = run_scheduled_pass(store, sink, now=NOW)

    assert result.events_emitted == 1
    assert result.evaluated_at == NOW


def test_scheduled_pass_raises_when_candidates_unavailable(sink: RecordingSink) -> None:
    store = InMemoryAgingStore()
    store.fail_listing = True

    with pytest.raises(AlertPassError):
        run_scheduled_pass(store, sink, now=NOW)
