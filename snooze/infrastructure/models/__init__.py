"""ORM models used by the scheduler infrastructure."""

from .scheduled_notification import ScheduledNotificationModel

__all__ = ["ScheduledNotificationModel"]
