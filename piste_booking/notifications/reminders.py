"""
Pre-visit reminder job.

Run periodically (e.g. every 15 minutes from a scheduler). Finds active
bookings starting ``lead_minutes`` from now, within a small window around
that instant, that have a linked messaging id and have not been reminded
yet, pushes a LINE reminder and marks them as reminded.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import httpx

from piste_booking.config import ReminderConfig
from piste_booking.notifications.http_sinks import LinePushNotifier
from piste_booking.schemas.booking_schema import Booking
from piste_booking.stores.booking_store import BookingStore
from piste_booking.utils import Clock, format_hhmm

logger = logging.getLogger(__name__)


@dataclass
class ReminderReport:
    """Summary of one reminder run."""

    window_start: datetime
    window_end: datetime
    sent: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def render_reminder(booking: Booking, menu: str) -> str:
    return (
        "[Reminder]\n"
        f"You have a reservation today from {format_hhmm(booking.start_time)}.\n\n"
        f"Menu: {menu}\n\n"
        "Take care on your way. We look forward to seeing you."
    )


class ReminderJob:
    def __init__(
        self,
        bookings: BookingStore,
        line: LinePushNotifier,
        config: Optional[ReminderConfig] = None,
        clock: Clock = datetime.now,
    ) -> None:
        self._bookings = bookings
        self._line = line
        self._config = config or ReminderConfig()
        self._clock = clock

    def window(self) -> tuple[datetime, datetime]:
        """The [start, end] start-time window reminders are due for right now."""
        target = self._clock().replace(second=0, microsecond=0) + timedelta(
            minutes=self._config.lead_minutes
        )
        return (
            target - timedelta(minutes=self._config.window_before_minutes),
            target + timedelta(minutes=self._config.window_after_minutes),
        )

    async def due_bookings(self) -> list[Booking]:
        start, end = self.window()
        due: list[Booking] = []
        for day in sorted({start.date(), end.date()}):
            for booking in await self._bookings.list_active_by_date(day):
                starts_at = datetime.combine(booking.date, booking.start_time)
                if (
                    start <= starts_at <= end
                    and not booking.reminder_sent
                    and booking.linked_messaging_id
                ):
                    due.append(booking)
        return due

    async def run(self) -> ReminderReport:
        start, end = self.window()
        report = ReminderReport(window_start=start, window_end=end)
        due = await self.due_bookings()
        logger.info(
            "Reminder search %s - %s: %d due",
            start.strftime("%Y-%m-%d %H:%M"), end.strftime("%H:%M"), len(due),
        )
        for booking in due:
            text = render_reminder(booking, await self._line.describe_menu(booking.menu_id))
            try:
                await self._line.push_text(booking.linked_messaging_id or "", text)
            except httpx.HTTPError as exc:
                logger.error("Reminder push failed for %s: %s", booking.id, exc)
                report.failed.append(booking.id)
                continue
            await self._bookings.mark_reminder_sent(booking.id)
            report.sent.append(booking.id)
        return report
