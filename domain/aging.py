"""
Domain: Aging buckets and inventory age classification.

Rules implemented here:
- Elapsed days are whole 24-hour days since intake:
  elapsed_days = max(0, floor((now - intake_at) / 24 hours))
  A negative duration (clock skew) is clamped to 0.
- Buckets partition the non-negative integers:
  - ACTIVE:   elapsed_days ∈ [  0,  30 ]
  - IDLE:     elapsed_days ∈ [ 31,  44 ]
  - OBSOLETE: elapsed_days ∈ [ 45,  89 ]
  - SURPLUS:  elapsed_days ≥ 90
- An item needs attention once elapsed_days ≥ 45 (OBSOLETE or SURPLUS).

The bucket table and the attention threshold live together below and are
cross-checked at import time so they cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from .time import whole_days_between


class AgingClassificationError(ValueError):
    """Raised when a day count cannot be mapped to exactly one bucket."""


class AgingBucket(str, Enum):
    ACTIVE = "ACTIVE"
    IDLE = "IDLE"
    OBSOLETE = "OBSOLETE"
    SURPLUS = "SURPLUS"

    @staticmethod
    def for_elapsed_days(elapsed_days: int) -> "AgingBucket":
        """
        Resolve an AgingBucket from an integer number of days in stock.

        Every non-negative integer maps to exactly one bucket.
        """

        if elapsed_days < 0:
            raise AgingClassificationError("elapsed_days must be >= 0")

        for bucket, lower, upper in BUCKET_TABLE:
            if elapsed_days >= lower and (upper is None or elapsed_days <= upper):
                return bucket
        raise AgingClassificationError(f"No AgingBucket covers elapsed_days={elapsed_days}")

    @property
    def rank(self) -> int:
        return _BUCKET_ORDER.index(self)


# (bucket, first day inclusive, last day inclusive or None for open-ended)
BUCKET_TABLE: Tuple[Tuple[AgingBucket, int, Optional[int]], ...] = (
    (AgingBucket.ACTIVE, 0, 30),
    (AgingBucket.IDLE, 31, 44),
    (AgingBucket.OBSOLETE, 45, 89),
    (AgingBucket.SURPLUS, 90, None),
)

# Policy constant: must equal the first day of OBSOLETE.
NEEDS_ATTENTION_FROM_DAY: int = 45

_BUCKET_ORDER: Tuple[AgingBucket, ...] = tuple(row[0] for row in BUCKET_TABLE)


def _check_policy_table() -> None:
    expected_lower = 0
    for index, (_, lower, upper) in enumerate(BUCKET_TABLE):
        if lower != expected_lower:
            raise AssertionError(f"Bucket table gap or overlap at day {expected_lower}")
        if upper is None:
            if index != len(BUCKET_TABLE) - 1:
                raise AssertionError("Only the last bucket may be open-ended")
            break
        expected_lower = upper + 1
    else:
        raise AssertionError("Last bucket must be open-ended")

    obsolete_lower = next(lower for bucket, lower, _ in BUCKET_TABLE if bucket is AgingBucket.OBSOLETE)
    if NEEDS_ATTENTION_FROM_DAY != obsolete_lower:
        raise AssertionError("NEEDS_ATTENTION_FROM_DAY must match the OBSOLETE lower bound")


_check_policy_table()


@dataclass(frozen=True, slots=True)
class AgingClassification:
    """Computed classification for one item at one instant."""

    bucket: AgingBucket
    elapsed_days: int
    needs_attention: bool

    @property
    def days_until_attention(self) -> int:
        """Days left before the item needs attention (0 once it does)."""

        return max(0, NEEDS_ATTENTION_FROM_DAY - self.elapsed_days)


def elapsed_days_since(intake_at: datetime, now: datetime) -> int:
    """Whole days in stock, clamped to 0 when now precedes intake_at."""

    return max(0, whole_days_between(intake_at, now))


def classify(intake_at: datetime, now: datetime) -> AgingClassification:
    """
    Classify an item received at `intake_at`, evaluated at `now`.

    Both timestamps must be UTC. Callers filter out items without an intake
    timestamp before calling.
    """

    elapsed_days = elapsed_days_since(intake_at, now)
    return AgingClassification(
        bucket=AgingBucket.for_elapsed_days(elapsed_days),
        elapsed_days=elapsed_days,
        needs_attention=elapsed_days >= NEEDS_ATTENTION_FROM_DAY,
    )


__all__ = [
    "AgingBucket",
    "AgingClassification",
    "AgingClassificationError",
    "BUCKET_TABLE",
    "NEEDS_ATTENTION_FROM_DAY",
    "classify",
    "elapsed_days_since",
]
