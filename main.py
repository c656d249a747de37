"""
Piste reservation core entry point.

Wires the in-memory stores, the availability service and the booking
lifecycle from settings, with notification sinks enabled for whatever
endpoints are configured.

The stores live in process memory and start empty, so ``reminders`` here
only checks the reminder wiring and always finds nothing due. A deployment
runs ``ReminderJob`` against its persistent ``BookingStore``.

Usage:
    Console demo:      python main.py console
    List free times:   python main.py slots 2026-02-03 [menu_id]
    Reminder run:      python main.py reminders
"""

import asyncio
import logging
import sys
from datetime import datetime
from typing import Optional

from piste_booking.config import settings
from piste_booking.notifications.dispatcher import LoggingNotifier, NotificationDispatcher
from piste_booking.notifications.http_sinks import CalendarWebhookNotifier, LinePushNotifier
from piste_booking.notifications.reminders import ReminderJob
from piste_booking.scheduling.availability import AvailabilityService
from piste_booking.scheduling.lifecycle import BookingLifecycle
from piste_booking.scheduling.slot_generator import OperatingHours
from piste_booking.stores.booking_store import InMemoryBookingStore
from piste_booking.stores.holiday_store import InMemoryHolidayStore
from piste_booking.stores.menu_store import DEFAULT_MENUS, InMemoryMenuStore
from piste_booking.utils import format_hhmm

logger = logging.getLogger(__name__)


class App:
    """Process-wide wiring of stores, services and notification sinks."""

    def __init__(self) -> None:
        self.bookings = InMemoryBookingStore()
        self.menus = InMemoryMenuStore(DEFAULT_MENUS)
        self.holidays = InMemoryHolidayStore()
        self.line = LinePushNotifier.from_config(settings.notifications, self.menus)
        self.dispatcher = NotificationDispatcher([LoggingNotifier()])
        if settings.notifications.calendar_webhook_url:
            self.dispatcher.add_sink(CalendarWebhookNotifier.from_config(settings.notifications))
        if settings.notifications.line_channel_access_token:
            self.dispatcher.add_sink(self.line)
        self.availability = AvailabilityService(
            self.bookings,
            self.menus,
            self.holidays,
            OperatingHours.from_config(settings.hours),
        )
        self.lifecycle = BookingLifecycle(
            self.bookings, self.menus, self.dispatcher, store_config=settings.store
        )

    async def close(self) -> None:
        for sink in self.dispatcher.sinks:
            close = getattr(sink, "close", None)
            if close is not None:
                await close()
        await self.line.close()


async def _print_slots(day_arg: str, menu_id: Optional[str]) -> None:
    day = datetime.strptime(day_arg, "%Y-%m-%d").date()
    app = App()
    try:
        if menu_id:
            slots = await app.availability.available_slots(day, menu_id)
        else:
            slots = await app.availability.candidate_slots(day)
        print(" ".join(format_hhmm(s) for s in slots) or "(no slots)")
    finally:
        await app.close()


async def _run_reminders() -> None:
    app = App()
    try:
        report = await ReminderJob(app.bookings, app.line, settings.reminders).run()
        logger.info("Reminders sent: %d, failed: %d", len(report.sent), len(report.failed))
    finally:
        await app.close()


def _run_console_mode() -> None:
    """Start the offline console demo (no network required)."""
    from console_demo import ConsoleSession

    asyncio.run(ConsoleSession().run())


if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "console"
    if mode == "console":
        _run_console_mode()
    elif mode == "slots" and len(sys.argv) > 2:
        asyncio.run(_print_slots(sys.argv[2], sys.argv[3] if len(sys.argv) > 3 else None))
    elif mode == "reminders":
        asyncio.run(_run_reminders())
    else:
        print(__doc__)
        sys.exit(2)
