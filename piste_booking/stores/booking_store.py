"""
Booking store interface and the in-memory reference implementation.

In production this is backed by a hosted Postgres table; the protocol is
what the lifecycle depends on. ``transaction(date)`` must make the
re-fetch / overlap check / insert sequence of a commit atomic with respect
to other commits for the same date.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional, Protocol

from piste_booking.errors import BookingNotFoundError
from piste_booking.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)


class BookingStore(Protocol):
    def transaction(self, day: date) -> AbstractAsyncContextManager[None]: ...

    async def create(self, booking: Booking) -> Booking: ...

    async def get(self, booking_id: str) -> Optional[Booking]: ...

    async def list_active_by_date(self, day: date) -> list[Booking]: ...

    async def list_by_date(self, day: date) -> list[Booking]: ...

    async def list_from(self, day: date) -> list[Booking]: ...

    async def list_by_account(self, account_id: str) -> list[Booking]: ...

    async def list_all(self) -> list[Booking]: ...

    async def update_status(
        self, booking_id: str, status: BookingStatus, reason: Optional[str] = None
    ) -> Booking: ...

    async def update_links(
        self,
        booking_id: str,
        messaging_id: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> Booking: ...

    async def mark_reminder_sent(self, booking_id: str) -> Booking: ...


def _sort_key(booking: Booking) -> tuple:
    return (booking.date, booking.start_time, booking.created_at)


class InMemoryBookingStore:
    """
    Dict-backed booking store with one asyncio.Lock per date.

    Records are copied in and out so callers never hold a reference to
    stored state.
    """

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._locks: defaultdict[date, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def transaction(self, day: date) -> AsyncIterator[None]:
        async with self._locks[day]:
            yield

    async def create(self, booking: Booking) -> Booking:
        if booking.id in self._bookings:
            raise ValueError(f"Booking id already exists: {booking.id}")
        self._bookings[booking.id] = booking.model_copy(deep=True)
        logger.debug("Stored booking %s", booking.id)
        return booking.model_copy(deep=True)

    async def get(self, booking_id: str) -> Optional[Booking]:
        found = self._bookings.get(booking_id)
        return found.model_copy(deep=True) if found else None

    async def list_active_by_date(self, day: date) -> list[Booking]:
        return [b for b in await self.list_by_date(day) if b.is_active]

    async def list_by_date(self, day: date) -> list[Booking]:
        rows = [b.model_copy(deep=True) for b in self._bookings.values() if b.date == day]
        return sorted(rows, key=_sort_key)

    async def list_from(self, day: date) -> list[Booking]:
        rows = [b.model_copy(deep=True) for b in self._bookings.values() if b.date >= day]
        return sorted(rows, key=_sort_key)

    async def list_by_account(self, account_id: str) -> list[Booking]:
        rows = [
            b.model_copy(deep=True) for b in self._bookings.values()
            if b.linked_account_id == account_id
        ]
        return sorted(rows, key=_sort_key)

    async def list_all(self) -> list[Booking]:
        return sorted((b.model_copy(deep=True) for b in self._bookings.values()), key=_sort_key)

    async def update_status(
        self, booking_id: str, status: BookingStatus, reason: Optional[str] = None
    ) -> Booking:
        changes: dict = {"status": status}
        if reason is not None:
            changes["cancel_reason"] = reason
        return self._apply(booking_id, changes)

    async def update_links(
        self,
        booking_id: str,
        messaging_id: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> Booking:
        changes: dict = {}
        if messaging_id is not None:
            changes["linked_messaging_id"] = messaging_id
        if account_id is not None:
            changes["linked_account_id"] = account_id
        return self._apply(booking_id, changes)

    async def mark_reminder_sent(self, booking_id: str) -> Booking:
        return self._apply(booking_id, {"reminder_sent": True})

    def _apply(self, booking_id: str, changes: dict) -> Booking:
        current = self._bookings.get(booking_id)
        if current is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found.")
        updated = Booking.model_validate({**current.model_dump(), **changes})
        self._bookings[booking_id] = updated
        return updated.model_copy(deep=True)

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        self._bookings.clear()
        self._locks.clear()
