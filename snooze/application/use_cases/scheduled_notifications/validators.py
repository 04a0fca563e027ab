"""Validation helpers applied before a notification is scheduled."""

from __future__ import annotations

from datetime import datetime

from snooze.domain.exceptions import SchedulingFailed
from snooze.domain.notifiable import is_notifiable, qualified_type_name
from snooze.utils import parse_app_datetime


def ensure_notifiable(target: object) -> None:
    """Raise ``SchedulingFailed`` unless ``target`` can receive notifications."""

    if not is_notifiable(target):
        msg = f"{qualified_type_name(target)} is not notifiable"
        raise SchedulingFailed(msg, argument="target")


def coerce_send_at(value: datetime | str) -> datetime:
    """Return ``value`` as an aware datetime or raise ``SchedulingFailed``."""

    try:
        return parse_app_datetime(value)
    except (TypeError, ValueError) as exc:
        raise SchedulingFailed(str(exc), argument="send_at") from exc


def ensure_future_send_at(value: datetime | str, *, now: datetime) -> datetime:
    """Return the normalized ``send_at`` when it is strictly after ``now``."""

    send_at = coerce_send_at(value)
    if send_at <= now:
        msg = f"send_at {send_at.isoformat()} must be in the future"
        raise SchedulingFailed(msg, argument="send_at")
    return send_at


__all__ = ["coerce_send_at", "ensure_future_send_at", "ensure_notifiable"]
