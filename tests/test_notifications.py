"""Tests for the notification dispatcher and the HTTP sinks."""

import json
from datetime import datetime, time

import httpx
import pytest

from piste_booking.errors import NotificationDeliveryError
from piste_booking.notifications.dispatcher import LoggingNotifier, NotificationDispatcher
from piste_booking.notifications.http_sinks import (
    CalendarWebhookNotifier,
    LinePushNotifier,
    render_message,
)
from piste_booking.schemas.booking_schema import BookingSnapshot, BookingStatus, SourceChannel
from piste_booking.schemas.notification_schema import EventKind, NotificationEvent
from tests.conftest import TUESDAY, RecordingSink


def make_snapshot(**kw) -> BookingSnapshot:
    fields = dict(
        id="b1",
        date=TUESDAY,
        start_time=time(14, 0),
        end_time=time(14, 20),
        menu_id="personal-20",
        customer_name="Aiko Tanaka",
        customer_phone="09012345678",
        customer_email="aiko@example.com",
        source_channel=SourceChannel.WEB_FORM,
        status=BookingStatus.ACTIVE,
    )
    fields.update(kw)
    return BookingSnapshot(**fields)


def make_event(kind: EventKind = EventKind.CREATED, **kw) -> NotificationEvent:
    return NotificationEvent(kind=kind, booking=make_snapshot(**kw), occurred_at=datetime(2026, 2, 1, 12))


class Recorder:
    """MockTransport handler that records requests and answers with a fixed status."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_delivers_to_every_sink(self):
        a, b = RecordingSink("a"), RecordingSink("b")
        dispatcher = NotificationDispatcher([a, b])
        failures = await dispatcher.dispatch(make_event())
        assert failures == []
        assert len(a.events) == len(b.events) == 1

    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self):
        broken = RecordingSink("broken", fail=True)
        healthy = RecordingSink("healthy")
        dispatcher = NotificationDispatcher([broken, healthy])

        failures = await dispatcher.dispatch(make_event())

        assert len(failures) == 1
        error = failures[0]
        assert isinstance(error, NotificationDeliveryError)
        assert error.sink == "broken"
        assert error.event_kind == "created"
        assert error.booking_id == "b1"
        assert isinstance(error.cause, RuntimeError)
        assert dispatcher.failures == failures
        assert len(healthy.events) == 1

    @pytest.mark.asyncio
    async def test_no_sinks(self):
        assert await NotificationDispatcher().dispatch(make_event()) == []

    @pytest.mark.asyncio
    async def test_add_sink(self):
        dispatcher = NotificationDispatcher()
        sink = RecordingSink()
        dispatcher.add_sink(sink)
        await dispatcher.dispatch(make_event())
        assert len(sink.events) == 1

    @pytest.mark.asyncio
    async def test_logging_notifier(self, caplog):
        caplog.set_level("INFO")
        await LoggingNotifier().notify(make_event(EventKind.CANCELLED))
        assert "b1 cancelled" in caplog.text


class TestCalendarWebhook:
    @pytest.mark.asyncio
    async def test_posts_record(self):
        recorder = Recorder()
        sink = CalendarWebhookNotifier("https://hooks.example.com/sync", client=recorder.client())

        await sink.notify(make_event())

        assert len(recorder.requests) == 1
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://hooks.example.com/sync"
        body = json.loads(request.content)
        assert body["event"] == "created"
        assert body["record"]["id"] == "b1"
        assert body["record"]["date"] == "2026-02-03"
        assert body["record"]["source_channel"] == "web-form"

    @pytest.mark.asyncio
    async def test_skips_calendar_originated_bookings(self):
        recorder = Recorder()
        sink = CalendarWebhookNotifier("https://hooks.example.com/sync", client=recorder.client())
        await sink.notify(make_event(source_channel=SourceChannel.EXTERNAL_CALENDAR_SYNC))
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        recorder = Recorder(status_code=500)
        sink = CalendarWebhookNotifier("https://hooks.example.com/sync", client=recorder.client())
        with pytest.raises(httpx.HTTPStatusError):
            await sink.notify(make_event())

    @pytest.mark.asyncio
    async def test_http_error_isolated_by_dispatcher(self):
        recorder = Recorder(status_code=503)
        sink = CalendarWebhookNotifier("https://hooks.example.com/sync", client=recorder.client())
        dispatcher = NotificationDispatcher([sink])
        failures = await dispatcher.dispatch(make_event())
        assert [f.sink for f in failures] == ["calendar-webhook"]

    @pytest.mark.asyncio
    async def test_close(self):
        recorder = Recorder()
        client = recorder.client()
        sink = CalendarWebhookNotifier("https://hooks.example.com/sync", client=client)
        await sink.close()
        assert client.is_closed


class TestLinePush:
    @pytest.mark.asyncio
    async def test_pushes_to_linked_customer(self, menu_store):
        recorder = Recorder()
        sink = LinePushNotifier("token-abc", menus=menu_store, client=recorder.client())

        await sink.notify(make_event(linked_messaging_id="U123"))

        request = recorder.requests[0]
        assert request.headers["Authorization"] == "Bearer token-abc"
        body = json.loads(request.content)
        assert body["to"] == "U123"
        text = body["messages"][0]["text"]
        assert text.startswith("Your reservation is confirmed.")
        assert "Personal training" in text
        assert "2026-02-03 14:00" in text

    @pytest.mark.asyncio
    async def test_skips_unlinked_customer(self):
        recorder = Recorder()
        sink = LinePushNotifier("token-abc", client=recorder.client())
        await sink.notify(make_event())
        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_cancel_message_includes_reason(self):
        recorder = Recorder()
        sink = LinePushNotifier("token-abc", client=recorder.client())
        await sink.notify(make_event(
            EventKind.CANCELLED,
            linked_messaging_id="U123",
            status=BookingStatus.CANCELLED,
            cancel_reason="schedule conflict",
        ))
        text = json.loads(recorder.requests[0].content)["messages"][0]["text"]
        assert text.startswith("Your reservation has been cancelled.")
        assert "Reason: schedule conflict" in text
        assert "personal-20" in text


class TestRenderMessage:
    def test_cancel_without_reason_has_no_reason_line(self):
        text = render_message(
            EventKind.CANCELLED, make_snapshot(status=BookingStatus.CANCELLED), "Personal training"
        )
        assert "Reason" not in text
