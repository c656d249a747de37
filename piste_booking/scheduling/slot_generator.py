"""
Candidate start-time generation from fixed business-hour rules.

The generator knows nothing about existing bookings; conflicts are removed
afterwards by the overlap filter. It is a pure function of the date, the
operating hours, the closed days and the clock reading passed in.

Usage:
    hours = OperatingHours.from_config(settings.hours)
    slots = generate_slots(date(2026, 2, 3), hours, holidays=set(), now=datetime.now())
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Collection, Optional

from piste_booking.config import BusinessHoursConfig
from piste_booking.utils import Clock, from_minutes, to_minutes

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 20
DEFAULT_CLOSED_WEEKDAYS = frozenset({6, 0})  # Sunday, Monday


def _hhmm(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


@dataclass(frozen=True)
class OperatingHours:
    """Two opening windows per day, each with an exclusive end."""

    morning_start: time = time(9, 0)
    morning_end: time = time(12, 0)
    afternoon_start: time = time(13, 0)
    afternoon_end: time = time(20, 0)
    step_minutes: int = DEFAULT_STEP_MINUTES
    closed_weekdays: frozenset[int] = field(default=DEFAULT_CLOSED_WEEKDAYS)

    def __post_init__(self) -> None:
        if self.step_minutes < 1:
            raise ValueError(f"step_minutes must be >= 1, got {self.step_minutes}")

    @classmethod
    def from_config(cls, cfg: BusinessHoursConfig) -> "OperatingHours":
        return cls(
            morning_start=_hhmm(cfg.morning_start),
            morning_end=_hhmm(cfg.morning_end),
            afternoon_start=_hhmm(cfg.afternoon_start),
            afternoon_end=_hhmm(cfg.afternoon_end),
            step_minutes=cfg.step_minutes,
            closed_weekdays=cfg.closed_weekdays,
        )

    @property
    def windows(self) -> list[tuple[time, time]]:
        return [
            (self.morning_start, self.morning_end),
            (self.afternoon_start, self.afternoon_end),
        ]


def is_closed_day(day: date, hours: OperatingHours, holidays: Collection[date]) -> bool:
    """True when the date is a holiday or one of the weekly closed days."""
    return day in holidays or day.weekday() in hours.closed_weekdays


def generate_slots(
    day: date,
    hours: OperatingHours,
    holidays: Collection[date] = (),
    now: Optional[datetime] = None,
) -> list[time]:
    """
    Return the ascending candidate start times for ``day``.

    Args:
        day: The calendar date (naive, local).
        hours: Opening windows and step.
        holidays: Dates marked fully closed.
        now: Clock reading for the same-day cutoff. Defaults to ``datetime.now()``.

    Returns:
        Start times at ``step_minutes`` granularity inside each window.
        Empty on closed days and for dates before ``now``. On the current
        date, times strictly before the current time-of-day are dropped.
    """
    if is_closed_day(day, hours, holidays):
        return []

    now = now or datetime.now()
    today = now.date()
    if day < today:
        return []
    cutoff = to_minutes(now.time()) if day == today else 0

    slots: list[time] = []
    for start, end in hours.windows:
        minute = to_minutes(start)
        end_minute = to_minutes(end)
        while minute < end_minute:
            if minute >= cutoff:
                slots.append(from_minutes(minute))
            minute += hours.step_minutes
    return slots
