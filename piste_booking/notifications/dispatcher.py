"""
Notification dispatch: the sink interface the lifecycle calls after a
booking is committed or cancelled.

Delivery failures are caught here, logged and kept on the dispatcher.
They are never raised into the lifecycle, so a booking is never rolled
back because a message could not be sent.
"""

import asyncio
import logging
from typing import Iterable, Protocol

from piste_booking.errors import NotificationDeliveryError
from piste_booking.logging_context import get_request_logger
from piste_booking.schemas.notification_schema import NotificationEvent

logger = get_request_logger(__name__)


class NotificationSink(Protocol):
    name: str

    async def notify(self, event: NotificationEvent) -> None: ...


class LoggingNotifier:
    """Writes every event to the log. The default sink when nothing else is configured."""

    name = "log"

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    async def notify(self, event: NotificationEvent) -> None:
        b = event.booking
        logger.log(
            self._level,
            "Booking %s %s: %s %s-%s menu=%s source=%s reason=%s",
            b.id, event.kind.value, b.date.isoformat(),
            b.start_time.strftime("%H:%M"), b.end_time.strftime("%H:%M"),
            b.menu_id, b.source_channel.value, b.cancel_reason or "-",
        )


class NotificationDispatcher:
    """Fans an event out to every sink concurrently, isolating failures."""

    def __init__(self, sinks: Iterable[NotificationSink] = ()) -> None:
        self._sinks: list[NotificationSink] = list(sinks)
        self._failures: list[NotificationDeliveryError] = []

    @property
    def sinks(self) -> list[NotificationSink]:
        return list(self._sinks)

    @property
    def failures(self) -> list[NotificationDeliveryError]:
        """Delivery errors observed so far, oldest first."""
        return list(self._failures)

    def add_sink(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    async def dispatch(self, event: NotificationEvent) -> list[NotificationDeliveryError]:
        """Deliver ``event`` to all sinks. Returns the failures of this dispatch."""
        if not self._sinks:
            return []
        results = await asyncio.gather(
            *(sink.notify(event) for sink in self._sinks),
            return_exceptions=True,
        )
        failures: list[NotificationDeliveryError] = []
        for sink, result in zip(self._sinks, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                error = NotificationDeliveryError(
                    sink.name, event.kind.value, event.booking.id, result
                )
                logger.error("Notification delivery failed: %s", error)
                failures.append(error)
        self._failures.extend(failures)
        return failures
