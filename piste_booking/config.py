"""
Centralized configuration with environment variable overrides.

Operating hours, notification endpoints, reminder timing and retry
policy are configurable here. Nothing is hardcoded in scheduling or
notification logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _weekday_set(env_var: str, default: str) -> frozenset[int]:
    """Parse a comma separated list of weekday names (mon..sun) into weekday numbers."""
    raw = os.getenv(env_var, default)
    days: set[int] = set()
    for part in raw.split(","):
        name = part.strip().lower()[:3]
        if not name:
            continue
        if name not in _WEEKDAY_NAMES:
            raise ValueError(f"Invalid weekday in {env_var}: {part.strip()!r}")
        days.add(_WEEKDAY_NAMES.index(name))
    return frozenset(days)


@dataclass(frozen=True)
class BusinessHoursConfig:
    """Opening windows used by the slot generator. Times are HH:MM."""

    name: str = os.getenv("BUSINESS_NAME", "Piste")
    morning_start: str = os.getenv("MORNING_START", "09:00")
    morning_end: str = os.getenv("MORNING_END", "12:00")
    afternoon_start: str = os.getenv("AFTERNOON_START", "13:00")
    afternoon_end: str = os.getenv("AFTERNOON_END", "20:00")
    step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "20")
    closed_weekdays: frozenset[int] = _weekday_set("CLOSED_WEEKDAYS", "sun,mon")


@dataclass(frozen=True)
class NotificationConfig:
    """Outbound notification endpoints."""

    calendar_webhook_url: str = os.getenv("CALENDAR_WEBHOOK_URL", "")
    line_channel_access_token: str = os.getenv("LINE_CHANNEL_ACCESS_TOKEN", "")
    line_push_url: str = os.getenv(
        "LINE_PUSH_URL", "https://api.line.me/v2/bot/message/push"
    )
    http_timeout_sec: float = _safe_float("NOTIFY_HTTP_TIMEOUT", "10.0")


@dataclass(frozen=True)
class ReminderConfig:
    """Timing of the pre-visit reminder push."""

    lead_minutes: int = _safe_int("REMINDER_LEAD_MINUTES", "180")
    window_before_minutes: int = _safe_int("REMINDER_WINDOW_BEFORE", "7")
    window_after_minutes: int = _safe_int("REMINDER_WINDOW_AFTER", "8")


@dataclass(frozen=True)
class StoreConfig:
    """Retry policy for transient booking store failures."""

    max_commit_attempts: int = _safe_int("MAX_COMMIT_ATTEMPTS", "3")
    retry_backoff_sec: float = _safe_float("COMMIT_RETRY_BACKOFF", "0.2")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    hours: BusinessHoursConfig = field(default_factory=BusinessHoursConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _parse_hhmm(label: str, value: str) -> int:
    """Return minutes since midnight for an HH:MM string."""
    try:
        hours, minutes = value.split(":")
        total = int(hours) * 60 + int(minutes)
    except ValueError:
        raise ValueError(f"{label} must be HH:MM, got {value!r}") from None
    if not 0 <= total < 24 * 60:
        raise ValueError(f"{label} must be within the day, got {value!r}")
    return total


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    hours = config.hours
    morning = (
        _parse_hhmm("MORNING_START", hours.morning_start),
        _parse_hhmm("MORNING_END", hours.morning_end),
    )
    afternoon = (
        _parse_hhmm("AFTERNOON_START", hours.afternoon_start),
        _parse_hhmm("AFTERNOON_END", hours.afternoon_end),
    )
    if morning[0] > morning[1]:
        raise ValueError("MORNING_START must not be after MORNING_END")
    if afternoon[0] > afternoon[1]:
        raise ValueError("AFTERNOON_START must not be after AFTERNOON_END")
    if morning[1] > afternoon[0]:
        raise ValueError("Morning window must end before the afternoon window starts")
    if hours.step_minutes < 1:
        raise ValueError(f"SLOT_STEP_MINUTES must be >= 1, got {hours.step_minutes}")

    if config.notifications.http_timeout_sec <= 0:
        raise ValueError(
            "NOTIFY_HTTP_TIMEOUT must be > 0, "
            f"got {config.notifications.http_timeout_sec}"
        )
    if config.reminders.lead_minutes < 1:
        raise ValueError(
            f"REMINDER_LEAD_MINUTES must be >= 1, got {config.reminders.lead_minutes}"
        )
    if config.reminders.window_before_minutes < 0 or config.reminders.window_after_minutes < 0:
        raise ValueError("Reminder window bounds must be >= 0")
    if config.store.max_commit_attempts < 1:
        raise ValueError(
            f"MAX_COMMIT_ATTEMPTS must be >= 1, got {config.store.max_commit_attempts}"
        )
    if config.store.retry_backoff_sec < 0:
        raise ValueError(
            f"COMMIT_RETRY_BACKOFF must be >= 0, got {config.store.retry_backoff_sec}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.hours.name)
    return config


# Singleton instance
settings = load_config()
