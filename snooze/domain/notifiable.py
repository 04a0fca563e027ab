"""Capability checks for objects that can receive notifications."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .entities import TargetIdentity

if TYPE_CHECKING:
    from snooze.application.use_cases.scheduled_notifications import (
        NotificationScheduler,
        ScheduledNotification,
    )


@runtime_checkable
class Notifiable(Protocol):
    """Anything exposing ``notify(notification)`` is a valid addressee."""

    def notify(self, notification: Any) -> None:  # pragma: no cover - Protocol
        ...


def is_notifiable(target: object) -> bool:
    """Return ``True`` when ``target`` exposes a callable ``notify``."""

    return isinstance(target, Notifiable) and callable(getattr(target, "notify", None))


def qualified_type_name(value: object) -> str:
    """Return ``module.QualName`` for ``value`` (or for the class itself)."""

    cls = value if isinstance(value, type) else type(value)
    return f"{cls.__module__}.{cls.__qualname__}"


def resolve_target_identity(target: object) -> TargetIdentity:
    """Derive the stored identity of ``target``.

    Targets with a non-null ``id`` attribute (ORM rows, dataclasses) are keyed
    by it; anything else is anonymous.
    """

    key = getattr(target, "id", None)
    return TargetIdentity(
        target_type=qualified_type_name(target),
        key=None if key is None else str(key),
    )


class SnoozeNotifiable:
    """Mixin adding ``notify_at`` to notifiable classes."""

    def notify_at(
        self,
        scheduler: "NotificationScheduler",
        notification: Any,
        send_at: datetime | str,
    ) -> "ScheduledNotification":
        """Schedule ``notification`` to be delivered to ``self`` at ``send_at``."""

        return scheduler.create(self, notification, send_at)


__all__ = [
    "Notifiable",
    "SnoozeNotifiable",
    "is_notifiable",
    "qualified_type_name",
    "resolve_target_identity",
]
