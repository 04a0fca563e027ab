"""Use cases for scheduling notifications and driving their lifecycle."""

from .scheduler import NotificationScheduler, ScheduledNotification, build_scheduler
from .send_due import DispatchSummary, send_due_notifications
from .validators import coerce_send_at, ensure_future_send_at, ensure_notifiable

__all__ = [
    "DispatchSummary",
    "NotificationScheduler",
    "ScheduledNotification",
    "build_scheduler",
    "coerce_send_at",
    "ensure_future_send_at",
    "ensure_notifiable",
    "send_due_notifications",
]
