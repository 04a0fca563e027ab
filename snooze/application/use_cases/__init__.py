"""Aggregate application use cases."""

from .scheduled_notifications import (
    NotificationScheduler,
    build_scheduler,
    send_due_notifications,
)

__all__ = [
    "NotificationScheduler",
    "build_scheduler",
    "send_due_notifications",
]
