"""Domain entity representing a notification scheduled for later delivery."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationStatus(str, Enum):
    """Disposition of a scheduled notification record."""

    PENDING = "pending"
    SENT = "sent"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TargetIdentity:
    """Addressee of a scheduled notification.

    ``key`` is ``None`` for targets without a stable identity (for example an
    ad-hoc mail recipient); such targets still group by ``target_type``.
    """

    target_type: str
    key: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.key is None


@dataclass
class ScheduledNotificationRecord:
    """Persisted state of one scheduled notification."""

    id: int | None
    target_id: str | None
    target_type: str
    target: str
    notification_type: str
    notification: str
    send_at: datetime
    sent_at: datetime | None = None
    rescheduled_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def identity(self) -> TargetIdentity:
        return TargetIdentity(target_type=self.target_type, key=self.target_id)

    @property
    def status(self) -> NotificationStatus:
        """Return the terminal disposition, or ``PENDING`` when there is none."""

        if self.sent_at is not None:
            return NotificationStatus.SENT
        if self.cancelled_at is not None:
            return NotificationStatus.CANCELLED
        return NotificationStatus.PENDING

    def is_due(self, now: datetime) -> bool:
        """Return ``True`` when the record is pending and ``send_at`` has passed."""

        return self.status is NotificationStatus.PENDING and self.send_at <= now


__all__ = ["NotificationStatus", "ScheduledNotificationRecord", "TargetIdentity"]
