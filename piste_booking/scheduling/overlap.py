"""
Half-open interval overlap checks between a candidate slot and bookings.

A candidate ``[start, start + duration)`` conflicts with an existing range
``[s, e)`` iff ``start < e and end > s``. Touching endpoints never
conflict. Callers pass only active bookings; cancelled ones must already
be excluded from ``existing``.
"""

from datetime import time
from typing import Iterable, Sequence

from piste_booking.schemas.booking_schema import TimeRange
from piste_booking.utils import to_minutes

MINUTES_PER_DAY = 24 * 60


def candidate_end_minutes(candidate_start: time, duration_minutes: int) -> int:
    """End of the candidate interval in minutes since midnight (may exceed the day)."""
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")
    return to_minutes(candidate_start) + duration_minutes


def overlaps(candidate_start: time, duration_minutes: int, existing: TimeRange) -> bool:
    start = to_minutes(candidate_start)
    end = candidate_end_minutes(candidate_start, duration_minutes)
    return start < to_minutes(existing.end) and end > to_minutes(existing.start)


def conflicting_ranges(
    candidate_start: time, duration_minutes: int, existing: Iterable[TimeRange]
) -> list[TimeRange]:
    """Return every existing range the candidate overlaps."""
    return [r for r in existing if overlaps(candidate_start, duration_minutes, r)]


def is_admissible(
    candidate_start: time, duration_minutes: int, existing: Iterable[TimeRange]
) -> bool:
    """True when the candidate overlaps none of the existing ranges."""
    return not any(overlaps(candidate_start, duration_minutes, r) for r in existing)


def filter_admissible(
    candidates: Sequence[time], duration_minutes: int, existing: Iterable[TimeRange]
) -> list[time]:
    """Keep the admissible candidates, preserving their order."""
    ranges = list(existing)
    return [c for c in candidates if is_admissible(c, duration_minutes, ranges)]
