"""Slot listing for a date: candidate generation followed by the overlap filter."""

import logging
from datetime import date, datetime, time
from typing import Optional

from piste_booking.errors import ValidationError
from piste_booking.scheduling.overlap import filter_admissible
from piste_booking.scheduling.slot_generator import OperatingHours, generate_slots
from piste_booking.schemas.booking_schema import TimeRange
from piste_booking.stores.booking_store import BookingStore
from piste_booking.stores.holiday_store import HolidayStore
from piste_booking.stores.menu_store import MenuStore
from piste_booking.utils import Clock

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Read-side view of a day's free start times.

    Results are a snapshot and may be stale by the time the customer
    submits; the lifecycle re-checks at commit time.
    """

    def __init__(
        self,
        bookings: BookingStore,
        menus: MenuStore,
        holidays: HolidayStore,
        hours: Optional[OperatingHours] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._bookings = bookings
        self._menus = menus
        self._holidays = holidays
        self._hours = hours or OperatingHours()
        self._clock = clock

    @property
    def hours(self) -> OperatingHours:
        return self._hours

    async def candidate_slots(self, day: date) -> list[time]:
        """All start times the business rules allow on ``day``, ignoring bookings."""
        closed = {day} if await self._holidays.is_closed(day) else set()
        return generate_slots(day, self._hours, closed, self._clock())

    async def booked_ranges(self, day: date) -> list[TimeRange]:
        return [b.time_range for b in await self._bookings.list_active_by_date(day)]

    async def available_slots(self, day: date, menu_id: str) -> list[time]:
        """Start times on ``day`` where ``menu_id`` fits without overlapping an active booking."""
        menu = await self._menus.get(menu_id)
        if menu is None:
            raise ValidationError(f"Unknown menu: {menu_id}", fields=["menu_id"])
        candidates = await self.candidate_slots(day)
        if not candidates:
            return []
        admissible = filter_admissible(candidates, menu.duration_minutes, await self.booked_ranges(day))
        logger.debug(
            "%s on %s: %d of %d slots free",
            menu_id, day.isoformat(), len(admissible), len(candidates),
        )
        return admissible
