"""
HTTP notification sinks: the calendar sync webhook and LINE push messages.

Both reuse one pooled ``httpx.AsyncClient`` per sink, created lazily and
closed with ``close()``. A client may be injected instead, which is how
tests route requests through ``httpx.MockTransport``.
"""

import logging
from typing import Any, Optional

import httpx

from piste_booking.config import NotificationConfig
from piste_booking.schemas.booking_schema import BookingSnapshot, SourceChannel
from piste_booking.schemas.notification_schema import EventKind, NotificationEvent
from piste_booking.stores.menu_store import MenuStore, menu_label
from piste_booking.utils import format_hhmm

logger = logging.getLogger(__name__)


class _HttpSink:
    def __init__(self, timeout_sec: float, client: Optional[httpx.AsyncClient] = None) -> None:
        self._timeout = timeout_sec
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None


class CalendarWebhookNotifier(_HttpSink):
    """
    Posts booking records to the spreadsheet/calendar sync webhook.

    Bookings that came from the calendar itself are skipped so they are
    not written back to it.
    """

    name = "calendar-webhook"

    def __init__(
        self,
        url: str,
        timeout_sec: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout_sec, client)
        self._url = url

    @classmethod
    def from_config(cls, cfg: NotificationConfig) -> "CalendarWebhookNotifier":
        return cls(cfg.calendar_webhook_url, cfg.http_timeout_sec)

    async def notify(self, event: NotificationEvent) -> None:
        if event.booking.source_channel == SourceChannel.EXTERNAL_CALENDAR_SYNC:
            logger.info("Skipping calendar webhook for %s: synced from calendar", event.booking.id)
            return
        payload: dict[str, Any] = {
            "event": event.kind.value,
            "record": event.booking.model_dump(mode="json"),
        }
        client = await self._get_client()
        response = await client.post(self._url, json=payload)
        response.raise_for_status()
        logger.info("Calendar webhook accepted %s (%s)", event.booking.id, response.status_code)


class LinePushNotifier(_HttpSink):
    """Sends created/cancelled messages to customers who linked their LINE account."""

    name = "line-push"

    def __init__(
        self,
        access_token: str,
        push_url: str = "https://api.line.me/v2/bot/message/push",
        menus: Optional[MenuStore] = None,
        timeout_sec: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__(timeout_sec, client)
        self._token = access_token
        self._push_url = push_url
        self._menus = menus

    @classmethod
    def from_config(
        cls, cfg: NotificationConfig, menus: Optional[MenuStore] = None
    ) -> "LinePushNotifier":
        return cls(cfg.line_channel_access_token, cfg.line_push_url, menus, cfg.http_timeout_sec)

    async def push_text(self, to: str, text: str) -> None:
        """Push a single text message to a LINE user."""
        client = await self._get_client()
        response = await client.post(
            self._push_url,
            headers={"Authorization": f"Bearer {self._token}"},
            json={"to": to, "messages": [{"type": "text", "text": text}]},
        )
        response.raise_for_status()

    async def describe_menu(self, menu_id: str) -> str:
        if self._menus is None:
            return menu_id
        return await menu_label(self._menus, menu_id)

    async def notify(self, event: NotificationEvent) -> None:
        booking = event.booking
        if not booking.linked_messaging_id:
            return
        text = render_message(event.kind, booking, await self.describe_menu(booking.menu_id))
        await self.push_text(booking.linked_messaging_id, text)
        logger.info("LINE %s message sent for %s", event.kind.value, booking.id)


def render_message(kind: EventKind, booking: BookingSnapshot, menu: str) -> str:
    when = f"{booking.date.isoformat()} {format_hhmm(booking.start_time)}"
    if kind == EventKind.CREATED:
        return (
            "Your reservation is confirmed.\n\n"
            f"Date: {when}\nMenu: {menu}\n\nWe look forward to seeing you."
        )
    lines = [
        "Your reservation has been cancelled.",
        "",
        f"Date: {when}",
        f"Menu: {menu}",
    ]
    if booking.cancel_reason:
        lines.append(f"Reason: {booking.cancel_reason}")
    return "\n".join(lines)
