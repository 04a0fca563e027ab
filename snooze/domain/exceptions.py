"""Errors raised by the scheduled notification lifecycle."""

from __future__ import annotations


class SnoozeError(RuntimeError):
    """Base class for every error raised by the scheduler."""


class SchedulingFailed(SnoozeError, ValueError):
    """Raised when a notification cannot be scheduled with the given arguments."""

    def __init__(self, message: str, *, argument: str) -> None:
        super().__init__(message)
        self.argument = argument


class NotificationAlreadySent(SnoozeError):
    """Raised when a transition is attempted on a notification that was sent."""

    def __init__(self, record_id: int | None) -> None:
        super().__init__(f"Scheduled notification {record_id} has already been sent")
        self.record_id = record_id


class NotificationCancelled(SnoozeError):
    """Raised when a transition is attempted on a cancelled notification."""

    def __init__(self, record_id: int | None) -> None:
        super().__init__(f"Scheduled notification {record_id} has been cancelled")
        self.record_id = record_id


class ScheduledNotificationNotFound(SnoozeError, LookupError):
    """Raised when a scheduled notification vanished from the store."""

    def __init__(self, record_id: int | None) -> None:
        super().__init__(f"Scheduled notification {record_id} not found")
        self.record_id = record_id


class DeliveryFailed(SnoozeError):
    """Raised by a dispatcher when the transport did not accept the notification."""


__all__ = [
    "DeliveryFailed",
    "NotificationAlreadySent",
    "NotificationCancelled",
    "ScheduledNotificationNotFound",
    "SchedulingFailed",
    "SnoozeError",
]
