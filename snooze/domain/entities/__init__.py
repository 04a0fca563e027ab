"""Domain entities exposed by the scheduler."""

from .scheduled_notification import (
    NotificationStatus,
    ScheduledNotificationRecord,
    TargetIdentity,
)

__all__ = [
    "NotificationStatus",
    "ScheduledNotificationRecord",
    "TargetIdentity",
]
