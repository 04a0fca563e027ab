"""Repository implementations for infrastructure layer."""

from .scheduled_notification_repository import ScheduledNotificationRepository

__all__ = ["ScheduledNotificationRepository"]
