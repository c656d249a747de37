"""Shared utilities used across the booking core."""

import re
from datetime import datetime, time
from typing import Callable

Clock = Callable[[], datetime]


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    A value without any digits normalizes to an empty string.

    Examples:
        >>> normalize_phone("090-1234-5678")
        '09012345678'
        >>> normalize_phone("+81 (90) 1234-5678")
        '+819012345678'
        >>> normalize_phone("+")
        ''
    """
    value = value.strip()
    digits = re.sub(r"[^\d]", "", value)
    if not digits:
        return ""
    return "+" + digits if value.startswith("+") else digits


def to_minutes(value: time) -> int:
    """Minutes since midnight for a time-of-day."""
    return value.hour * 60 + value.minute


def from_minutes(total: int) -> time:
    """Time-of-day for a minute offset within the day (0 <= total < 1440)."""
    if not 0 <= total < 24 * 60:
        raise ValueError(f"Minute offset outside the day: {total}")
    return time(total // 60, total % 60)


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")
