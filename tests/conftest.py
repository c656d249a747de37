"""Shared test fixtures and helpers."""

import asyncio
from datetime import date, datetime, time
from typing import Optional

import pytest

from piste_booking.errors import TransientStoreError
from piste_booking.notifications.dispatcher import NotificationDispatcher
from piste_booking.scheduling.availability import AvailabilityService
from piste_booking.scheduling.lifecycle import BookingLifecycle
from piste_booking.scheduling.slot_generator import OperatingHours
from piste_booking.schemas.booking_schema import BookingRequest, SourceChannel
from piste_booking.schemas.notification_schema import NotificationEvent
from piste_booking.stores.booking_store import InMemoryBookingStore
from piste_booking.stores.holiday_store import InMemoryHolidayStore
from piste_booking.stores.menu_store import DEFAULT_MENUS, InMemoryMenuStore
from piste_booking.config import StoreConfig

# Sunday 2026-02-01, noon. 2026-02-03 is the first open day after it.
NOW = datetime(2026, 2, 1, 12, 0)
TUESDAY = date(2026, 2, 3)


class FixedClock:
    """Callable clock that tests can move."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingSink:
    """Notification sink that keeps every event, optionally failing."""

    def __init__(self, name: str = "recording", fail: bool = False) -> None:
        self.name = name
        self.fail = fail
        self.events: list[NotificationEvent] = []

    async def notify(self, event: NotificationEvent) -> None:
        self.events.append(event)
        if self.fail:
            raise RuntimeError(f"{self.name} is down")


class SlowBookingStore(InMemoryBookingStore):
    """Yields to the event loop on every read so concurrent commits interleave."""

    async def list_active_by_date(self, day: date):
        await asyncio.sleep(0.01)
        return await super().list_active_by_date(day)


class FlakyBookingStore(InMemoryBookingStore):
    """Fails the first ``failures`` reads inside a commit."""

    def __init__(self, failures: int = 1, error: Optional[Exception] = None) -> None:
        super().__init__()
        self.failures = failures
        self.error = error or TransientStoreError("connection reset")
        self.calls = 0

    async def list_active_by_date(self, day: date):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return await super().list_active_by_date(day)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def booking_store():
    return InMemoryBookingStore()


@pytest.fixture
def menu_store():
    return InMemoryMenuStore(DEFAULT_MENUS)


@pytest.fixture
def holiday_store():
    return InMemoryHolidayStore()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def dispatcher(recording_sink):
    return NotificationDispatcher([recording_sink])


@pytest.fixture
def lifecycle(booking_store, menu_store, dispatcher, clock):
    return BookingLifecycle(
        booking_store,
        menu_store,
        dispatcher,
        clock=clock,
        store_config=StoreConfig(max_commit_attempts=3, retry_backoff_sec=0.0),
    )


@pytest.fixture
def availability(booking_store, menu_store, holiday_store, clock):
    return AvailabilityService(booking_store, menu_store, holiday_store, OperatingHours(), clock)


def make_request(
    start: time = time(14, 0),
    day: date = TUESDAY,
    menu_id: str = "personal-20",
    name: str = "Aiko Tanaka",
    phone: str = "090-1234-5678",
    email: str = "aiko@example.com",
    source: SourceChannel = SourceChannel.WEB_FORM,
    messaging_id: Optional[str] = None,
) -> BookingRequest:
    """Helper to create a BookingRequest with sensible defaults."""
    return BookingRequest(
        menu_id=menu_id,
        date=day,
        start_time=start,
        customer_name=name,
        customer_phone=phone,
        customer_email=email,
        source_channel=source,
        linked_messaging_id=messaging_id,
    )
