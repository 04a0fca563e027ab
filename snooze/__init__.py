"""Snooze: schedule notifications for future delivery and manage their lifecycle."""

from snooze.application.use_cases.scheduled_notifications import (
    DispatchSummary,
    NotificationScheduler,
    ScheduledNotification,
    build_scheduler,
    send_due_notifications,
)
from snooze.domain.exceptions import (
    DeliveryFailed,
    NotificationAlreadySent,
    NotificationCancelled,
    ScheduledNotificationNotFound,
    SchedulingFailed,
    SnoozeError,
)
from snooze.domain.notifiable import Notifiable, SnoozeNotifiable

__all__ = [
    "DeliveryFailed",
    "DispatchSummary",
    "Notifiable",
    "NotificationAlreadySent",
    "NotificationCancelled",
    "NotificationScheduler",
    "ScheduledNotification",
    "ScheduledNotificationNotFound",
    "SchedulingFailed",
    "SnoozeError",
    "SnoozeNotifiable",
    "build_scheduler",
    "send_due_notifications",
]
