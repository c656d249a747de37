from piste_booking.notifications.dispatcher import (
    LoggingNotifier,
    NotificationDispatcher,
    NotificationSink,
)
from piste_booking.notifications.http_sinks import CalendarWebhookNotifier, LinePushNotifier
from piste_booking.notifications.reminders import ReminderJob, ReminderReport

__all__ = [
    "NotificationDispatcher", "NotificationSink", "LoggingNotifier",
    "CalendarWebhookNotifier", "LinePushNotifier",
    "ReminderJob", "ReminderReport",
]
