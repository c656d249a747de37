"""
Offline console demo: walks through the booking form without any network.

Uses the real slot generator, overlap filter, lifecycle and notification
dispatcher over in-memory stores. Notifications go to the log sink only.

Usage:
    python console_demo.py
    python console_demo.py --scenario booking
    python console_demo.py --scenario race
    python console_demo.py --scenario cancel
"""

import argparse
import asyncio
from datetime import date, datetime, timedelta
from typing import Optional

from piste_booking.config import settings
from piste_booking.errors import BookingError, ConflictError
from piste_booking.logging_context import new_request_id
from piste_booking.notifications.dispatcher import LoggingNotifier, NotificationDispatcher
from piste_booking.scheduling.availability import AvailabilityService
from piste_booking.scheduling.lifecycle import BookingLifecycle
from piste_booking.scheduling.slot_generator import OperatingHours
from piste_booking.schemas.booking_schema import BookingRequest, ServiceMenu
from piste_booking.stores.booking_store import InMemoryBookingStore
from piste_booking.stores.holiday_store import InMemoryHolidayStore
from piste_booking.stores.menu_store import DEFAULT_MENUS, InMemoryMenuStore
from piste_booking.utils import format_hhmm

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"


def next_open_day(hours: OperatingHours, start: Optional[date] = None) -> date:
    day = (start or date.today()) + timedelta(days=1)
    while day.weekday() in hours.closed_weekdays:
        day += timedelta(days=1)
    return day


class ConsoleSession:
    """Menu -> date -> time -> contact details, as the web form asks them."""

    MAX_INPUT_LENGTH = 200

    def __init__(self) -> None:
        self.hours = OperatingHours.from_config(settings.hours)
        self.bookings = InMemoryBookingStore()
        self.menus = InMemoryMenuStore(DEFAULT_MENUS)
        self.holidays = InMemoryHolidayStore()
        self.dispatcher = NotificationDispatcher([LoggingNotifier()])
        self.availability = AvailabilityService(
            self.bookings, self.menus, self.holidays, self.hours
        )
        self.lifecycle = BookingLifecycle(
            self.bookings, self.menus, self.dispatcher, store_config=settings.store
        )

    def form_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Form]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {settings.hours.name.upper()} RESERVATIONS - {title}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    # ------------------------------------------------------------------ #
    # Scenarios
    # ------------------------------------------------------------------ #

    async def scenario_booking(self) -> None:
        """Book the first free slot of the next open day."""
        day = next_open_day(self.hours)
        menu = (await self.menus.list_all())[0]
        slots = await self.availability.available_slots(day, menu.id)
        self.form_say(f"{menu.label} on {day.isoformat()}: {len(slots)} free times.")
        await self._book(menu, day, slots[0], "Aiko Tanaka", "090-1234-5678", "aiko@example.com")
        remaining = await self.availability.available_slots(day, menu.id)
        self.system_log(f"Free times after booking: {len(remaining)}")

    async def scenario_race(self) -> None:
        """Two customers submit the same time at once; exactly one wins."""
        day = next_open_day(self.hours)
        menu = await self.menus.get("trial-60")
        start = self.hours.afternoon_start
        requests = [
            BookingRequest(
                menu_id=menu.id, date=day, start_time=start,
                customer_name=name, customer_phone=phone, customer_email=email,
            )
            for name, phone, email in (
                ("Customer A", "09011112222", "a@example.com"),
                ("Customer B", "09033334444", "b@example.com"),
            )
        ]
        results = await asyncio.gather(
            *(self._submit(r) for r in requests), return_exceptions=True
        )
        for request, result in zip(requests, results):
            if isinstance(result, ConflictError):
                print(f"{YELLOW}{request.customer_name}: {result}{RESET}")
            elif isinstance(result, BaseException):
                print(f"{RED}{request.customer_name}: unexpected {result!r}{RESET}")
            else:
                print(f"{GREEN}{request.customer_name}: booked {result.booking.id}{RESET}")
                self.system_log(f"State trace: {' -> '.join(result.state_trace)}")

    async def scenario_cancel(self) -> None:
        """Book, cancel with a reason, and show the time freeing up again."""
        day = next_open_day(self.hours)
        menu = await self.menus.get("personal-20")
        start = self.hours.morning_start
        booking = await self._book(menu, day, start, "Ken Sato", "08055556666", "ken@example.com")
        if booking is None:
            return
        cancelled = await self.lifecycle.cancel(booking.id, reason="schedule conflict")
        self.form_say(f"Cancelled {cancelled.id} ({cancelled.cancel_reason}).")
        slots = await self.availability.available_slots(day, menu.id)
        self.system_log(f"{format_hhmm(start)} free again: {start in slots}")

    SCENARIOS = {
        "booking": scenario_booking,
        "race": scenario_race,
        "cancel": scenario_cancel,
    }

    async def run_scenario(self, scenario: str) -> None:
        handler = self.SCENARIOS.get(scenario)
        if handler is None:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        self.banner(f"Scenario: {scenario}")
        await handler(self)
        self._summary()

    # ------------------------------------------------------------------ #
    # Interactive form
    # ------------------------------------------------------------------ #

    def _ask(self, prompt: str) -> Optional[str]:
        while True:
            text = input(f"{BLUE}{prompt} {RESET}").strip()
            if text.lower() in ("quit", "exit", "q"):
                return None
            if len(text) > self.MAX_INPUT_LENGTH:
                self.form_say("That is too long.")
                continue
            if text:
                return text

    async def run(self) -> None:
        self.banner("Console Demo")
        print(f"{DIM}  Type 'quit' to exit{RESET}\n")

        menus = await self.menus.list_all()
        for i, menu in enumerate(menus, 1):
            print(f"  {i}. {menu.label} ({menu.duration_minutes} min)")
        menu = None
        while menu is None:
            answer = self._ask("Menu number:")
            if answer is None:
                return
            if answer.isdigit() and 1 <= int(answer) <= len(menus):
                menu = menus[int(answer) - 1]
            else:
                self.form_say("Please pick a number from the list.")

        slots: list = []
        day = None
        while not slots:
            answer = self._ask("Date (YYYY-MM-DD):")
            if answer is None:
                return
            try:
                day = datetime.strptime(answer, "%Y-%m-%d").date()
            except ValueError:
                self.form_say("Use the YYYY-MM-DD format.")
                continue
            slots = await self.availability.available_slots(day, menu.id)
            if not slots:
                self.form_say("No free times that day. Try another date.")
        self.form_say("Free times: " + ", ".join(format_hhmm(s) for s in slots))

        start = None
        while start is None:
            answer = self._ask("Time (HH:MM):")
            if answer is None:
                return
            start = next((s for s in slots if format_hhmm(s) == answer), None)
            if start is None:
                self.form_say("Please pick one of the listed times.")

        name = self._ask("Name:")
        phone = name and self._ask("Phone:")
        email = phone and self._ask("Email:")
        if not email:
            return
        await self._book(menu, day, start, name, phone, email)
        self._summary()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _submit(self, request: BookingRequest):
        """Commit under its own request id; each gathered task has its own context."""
        new_request_id()
        return await self.lifecycle.commit(request)

    async def _book(self, menu: ServiceMenu, day: date, start, name: str, phone: str, email: str):
        request = BookingRequest(
            menu_id=menu.id, date=day, start_time=start,
            customer_name=name, customer_phone=phone, customer_email=email,
        )
        try:
            new_request_id()
            result = await self.lifecycle.commit_with_retry(request)
        except BookingError as exc:
            print(f"{RED}{exc}{RESET}")
            return None
        booking = result.booking
        self.form_say(
            f"Booked {menu.label} on {booking.date.isoformat()} "
            f"{format_hhmm(booking.start_time)}-{format_hhmm(booking.end_time)} "
            f"for {booking.customer_name}."
        )
        self.system_log(f"State trace: {' -> '.join(result.state_trace)}")
        return booking

    def _summary(self) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Done.{RESET}")
        print(f"{DIM}  Notification failures: {len(self.dispatcher.failures)}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline booking console demo")
    parser.add_argument(
        "--scenario",
        choices=list(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
