"""Admin-managed closed dates."""

import logging
from datetime import date
from typing import Optional, Protocol

from piste_booking.schemas.booking_schema import Holiday

logger = logging.getLogger(__name__)


class HolidayStore(Protocol):
    async def is_closed(self, day: date) -> bool: ...


class InMemoryHolidayStore:
    def __init__(self, dates: Optional[list[date]] = None) -> None:
        self._holidays: dict[date, Holiday] = {d: Holiday(date=d) for d in dates or []}

    async def is_closed(self, day: date) -> bool:
        return day in self._holidays

    async def list_all(self) -> list[Holiday]:
        return sorted(self._holidays.values(), key=lambda h: h.date)

    async def toggle(self, day: date) -> bool:
        """Flip the closed flag for ``day``. Returns the new state."""
        if day in self._holidays:
            del self._holidays[day]
            logger.info("Holiday removed: %s", day.isoformat())
            return False
        self._holidays[day] = Holiday(date=day)
        logger.info("Holiday added: %s", day.isoformat())
        return True
