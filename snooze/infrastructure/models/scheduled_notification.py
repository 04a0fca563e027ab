"""SQLAlchemy model for persisted scheduled notifications."""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from snooze.infrastructure.database import Base
from snooze.utils import now_in_app_naive_datetime


class ScheduledNotificationModel(Base):
    """Database representation of a notification waiting to be delivered."""

    __tablename__ = "scheduled_notifications"

    id = Column(Integer, primary_key=True, index=True)
    target_id = Column(String(64), nullable=True)
    target_type = Column(String(255), nullable=False)
    target = Column(Text, nullable=False)
    notification_type = Column(String(255), nullable=False, index=True)
    notification = Column(Text, nullable=False)
    send_at = Column(DateTime(), nullable=False, index=True)
    sent_at = Column(DateTime(), nullable=True)
    rescheduled_at = Column(DateTime(), nullable=True)
    cancelled_at = Column(DateTime(), nullable=True)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=False,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )

    __table_args__ = (
        Index("ix_scheduled_notifications_target", "target_type", "target_id"),
    )


__all__ = ["ScheduledNotificationModel"]
