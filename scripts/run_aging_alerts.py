#!/usr/bin/env python3
"""
Inventory Aging Alert Script

Runs one inventory aging alert pass over every in-stock serial number.
This script should be run daily via cron; repeated runs on the same day do not
send duplicate alerts.

Usage:
    python run_aging_alerts.py
    python run_aging_alerts.py --as-of "2025-03-01T01:00:00"
    python run_aging_alerts.py --dry-run

Schedule via cron (daily at 1 AM UTC):
    0 1 * * * cd /app && python scripts/run_aging_alerts.py
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from domain.aging import AgingBucket
from domain.inventory_item import InventoryItem
from domain.time import utc_now
from repositories.notification_repository import SupabaseNotificationSink
from repositories.serial_number_repository import SupabaseAgingStore
from services.aging_alert_service import AgingStore, AlertPassResult, run_scheduled_pass


class DryRunAgingStore:
    """Reads from the real store; every write is a no-op that reports success."""

    def __init__(self, store: AgingStore) -> None:
        self._store = store

    def list_alert_candidates(self) -> List[InventoryItem]:
        return self._store.list_alert_candidates()

    def claim_alert(
        self,
        item_id: str,
        expected_last_alert_at: Optional[datetime],
        alerted_at: datetime,
        bucket: AgingBucket,
        needs_attention: bool,
    ) -> bool:
        return True

    def refresh_aging_state(self, item_id: str, bucket: AgingBucket, needs_attention: bool) -> None:
        return None


def parse_as_of(value: Optional[str]) -> datetime:
    """Parse an ISO date/datetime as UTC (naive values are taken as UTC)."""
    if not value:
        return utc_now()
    as_of = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if as_of.tzinfo is None:
        return as_of.replace(tzinfo=timezone.utc)
    return as_of.astimezone(timezone.utc)


def print_summary(result: AlertPassResult, dry_run: bool) -> None:
    """Print alert pass summary."""
    print()
    print("=" * 60)
    print("INVENTORY AGING ALERT SUMMARY")
    print("=" * 60)
    print(f"Evaluated At:             {result.evaluated_at.isoformat()}")
    print(f"Items Evaluated:          {result.evaluated}")
    print()
    print(f"Alerts Emitted:           {result.events_emitted}")
    print(f"Skipped:                  {result.skipped} (not in stock / no intake date)")
    print(f"Already Alerted:          {result.suppressed}")
    print(f"Aging State Refreshed:    {result.refreshed}")
    print(f"Deferred:                 {result.deferred} (deadline reached)")
    print(f"Failures:                 {result.failures}")
    print()

    for event in result.events:
        print(f"  {event.trigger.value:<14} {event.serial:<24} {event.product_name} ({event.elapsed_days} days)")
    for failure in result.errors:
        print(f"  ERROR [{failure.stage}] {failure.item_id}: {failure.error}")

    if dry_run:
        print("** DRY RUN - No records were written and no notifications were sent **")
    else:
        print(f"SUCCESS: Emitted {result.events_emitted} aging alerts")

    print("=" * 60)


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Run the inventory aging alert pass",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with the current time
  python run_aging_alerts.py

  # Evaluate as of a specific instant
  python run_aging_alerts.py --as-of "2025-03-01T01:00:00"

  # Dry run (no writes, no notifications)
  python run_aging_alerts.py --dry-run

Schedule via cron (daily at 1 AM UTC):
  0 1 * * * cd /app && python scripts/run_aging_alerts.py
        """
    )

    parser.add_argument(
        "--as-of",
        type=str,
        help="ISO date/datetime to evaluate aging at (default: now, UTC)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report due alerts without writing or notifying"
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help=f"Worker threads (default: {config.ALERT_MAX_WORKERS})"
    )

    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Overall pass deadline in seconds (default: ALERT_PASS_DEADLINE_SECONDS or none)"
    )

    args = parser.parse_args()
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)

    try:
        as_of = parse_as_of(args.as_of)

        store = SupabaseAgingStore()
        if args.dry_run:
            result = run_scheduled_pass(
                DryRunAgingStore(store),
                None,
                now=as_of,
                max_workers=args.max_workers,
                deadline_seconds=args.deadline,
            )
        else:
            result = run_scheduled_pass(
                store,
                SupabaseNotificationSink(),
                now=as_of,
                max_workers=args.max_workers,
                deadline_seconds=args.deadline,
            )

        print_summary(result, args.dry_run)

        return 0

    except KeyboardInterrupt:
        print("\n\nAging alert pass interrupted by user")
        return 130

    except Exception as e:
        print(f"\nFATAL ERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
