"""Collaborator interfaces required by the scheduler core."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Protocol

from .entities import ScheduledNotificationRecord, TargetIdentity


class ScheduledNotificationStore(Protocol):
    """Durable storage of scheduled notification records.

    Every write guarded by ``require_*`` flags must be a single conditional
    statement so concurrent callers cannot both win a transition.
    """

    def create(self, values: Mapping[str, Any]) -> ScheduledNotificationRecord:
        ...

    def get(self, record_id: int) -> ScheduledNotificationRecord | None:
        ...

    def lock_for_update(
        self, record_id: int
    ) -> AbstractContextManager[ScheduledNotificationRecord | None]:
        """Hold a per-record lock until the next guarded write or an error."""

    def list_by_type(
        self, notification_type: str, *, include_sent: bool = False
    ) -> Sequence[ScheduledNotificationRecord]:
        ...

    def list_all(self, *, include_sent: bool = False) -> Sequence[ScheduledNotificationRecord]:
        ...

    def list_by_target(self, identity: TargetIdentity) -> Sequence[ScheduledNotificationRecord]:
        ...

    def list_due(
        self, now: datetime, *, not_before: datetime | None = None
    ) -> Sequence[ScheduledNotificationRecord]:
        ...

    def update_fields(
        self,
        record_id: int,
        values: Mapping[str, Any],
        *,
        require_unsent: bool = False,
        require_uncancelled: bool = False,
        require_not_rescheduled: bool = False,
    ) -> bool:
        ...

    def bulk_update_where(
        self,
        identity: TargetIdentity,
        values: Mapping[str, Any],
        *,
        require_unsent: bool = True,
        require_uncancelled: bool = True,
    ) -> int:
        ...


class DeliveryDispatcher(Protocol):
    """Deliver a rehydrated notification to its target.

    Implementations raise on transport failure; the scheduler never retries.
    """

    def dispatch(self, target: Any, notification: Any) -> None:  # pragma: no cover - Protocol
        ...


class PayloadSerializer(Protocol):
    """Opaque, round-tripping encoding of targets and notifications.

    ``deserialize`` runs on whatever the store holds. Formats that can execute
    code on load, such as pickle, are only safe while nothing but the
    scheduler writes the ``target`` and ``notification`` columns.
    """

    def serialize(self, value: Any) -> str:  # pragma: no cover - Protocol
        ...

    def deserialize(self, payload: str) -> Any:  # pragma: no cover - Protocol
        ...


__all__ = ["DeliveryDispatcher", "PayloadSerializer", "ScheduledNotificationStore"]
