"""Lifecycle controller for scheduled notifications.

``NotificationScheduler`` creates and queries records; every query returns
``ScheduledNotification`` handles whose methods perform the per-record
transitions::

    PENDING --send_now()--> SENT
    PENDING --cancel()----> CANCELLED
    SENT ----schedule_again_at()--> (new PENDING record, source marked rescheduled)

Each transition is one conditional write against the terminal timestamps, so
two callers racing on the same record cannot both succeed. ``send_now`` also
holds a row lock from its re-read until ``sent_at`` is written, so a second
sender waits and then finds the record sent instead of dispatching it again.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.orm import Session

from snooze.domain.entities import (
    NotificationStatus,
    ScheduledNotificationRecord,
    TargetIdentity,
)
from snooze.domain.exceptions import (
    NotificationAlreadySent,
    NotificationCancelled,
    ScheduledNotificationNotFound,
    SchedulingFailed,
)
from snooze.domain.notifiable import qualified_type_name, resolve_target_identity
from snooze.domain.ports import (
    DeliveryDispatcher,
    PayloadSerializer,
    ScheduledNotificationStore,
)
from snooze.infrastructure.dispatch import default_dispatcher
from snooze.infrastructure.repositories import ScheduledNotificationRepository
from snooze.infrastructure.serializer import default_serializer
from snooze.utils import now_in_app_timezone

from .validators import coerce_send_at, ensure_future_send_at, ensure_notifiable

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Create, query and bulk-cancel scheduled notifications."""

    def __init__(
        self,
        store: ScheduledNotificationStore,
        *,
        serializer: PayloadSerializer | None = None,
        dispatcher: DeliveryDispatcher | None = None,
    ) -> None:
        self.store = store
        self.serializer = serializer or default_serializer
        self.dispatcher = dispatcher or default_dispatcher
        self._sending: set[int] = set()

    @contextmanager
    def sending(self, record_id: int) -> Iterator[None]:
        """Mark ``record_id`` as being dispatched by this scheduler.

        A nested ``send_now`` for the same record, for example from inside a
        dispatcher, shares the open transaction and would not wait on the row
        lock, so it is refused here.
        """

        if record_id in self._sending:
            raise NotificationAlreadySent(record_id)
        self._sending.add(record_id)
        try:
            yield
        finally:
            self._sending.discard(record_id)

    def create(
        self, target: Any, notification: Any, send_at: datetime | str
    ) -> "ScheduledNotification":
        """Schedule ``notification`` for ``target`` at ``send_at``.

        Raises ``SchedulingFailed`` when ``target`` has no ``notify`` method,
        when ``send_at`` is not strictly in the future, or when either object
        cannot be serialized.
        """

        ensure_notifiable(target)
        when = ensure_future_send_at(send_at, now=now_in_app_timezone())
        identity = resolve_target_identity(target)

        record = self.store.create(
            {
                "target_id": identity.key,
                "target_type": identity.target_type,
                "target": self._serialize(target, argument="target"),
                "notification_type": qualified_type_name(notification),
                "notification": self._serialize(notification, argument="notification"),
                "send_at": when,
            }
        )
        logger.info(
            "Scheduled %s #%s for %s at %s",
            record.notification_type,
            record.id,
            identity.target_type,
            when.isoformat(),
        )
        return ScheduledNotification(record, self)

    def find(self, record_id: int) -> "ScheduledNotification | None":
        record = self.store.get(record_id)
        return ScheduledNotification(record, self) if record else None

    def find_by_type(
        self, notification_type: type | str, include_sent: bool = False
    ) -> list["ScheduledNotification"]:
        """Return notifications of ``notification_type`` (a class or its qualified name)."""

        if isinstance(notification_type, type):
            notification_type = qualified_type_name(notification_type)
        return self._wrap(
            self.store.list_by_type(notification_type, include_sent=include_sent)
        )

    def all(self, include_sent: bool = False) -> list["ScheduledNotification"]:
        return self._wrap(self.store.list_all(include_sent=include_sent))

    def find_by_target(self, target: Any) -> list["ScheduledNotification"]:
        """Return every notification, in any state, addressed to ``target``."""

        return self._wrap(self.store.list_by_target(self._identity_of(target)))

    def find_due(
        self, now: datetime | None = None, tolerance: timedelta | None = None
    ) -> list["ScheduledNotification"]:
        """Return pending notifications whose ``send_at`` has passed.

        With ``tolerance`` only notifications due within that window are
        returned; older ones are left for an operator to inspect.
        """

        moment = now or now_in_app_timezone()
        not_before = moment - tolerance if tolerance is not None else None
        return self._wrap(self.store.list_due(moment, not_before=not_before))

    def cancel_by_target(self, target: Any) -> int:
        """Cancel every pending notification of ``target``; return how many changed."""

        identity = self._identity_of(target)
        count = self.store.bulk_update_where(
            identity,
            {"cancelled_at": now_in_app_timezone()},
            require_unsent=True,
            require_uncancelled=True,
        )
        logger.info(
            "Cancelled %s pending notification(s) for %s #%s",
            count,
            identity.target_type,
            identity.key,
        )
        return count

    def _serialize(self, value: Any, *, argument: str) -> str:
        try:
            return self.serializer.serialize(value)
        except ValueError as exc:
            raise SchedulingFailed(str(exc), argument=argument) from exc

    @staticmethod
    def _identity_of(target: Any) -> TargetIdentity:
        if isinstance(target, TargetIdentity):
            return target
        return resolve_target_identity(target)

    def _wrap(
        self, records: Iterable[ScheduledNotificationRecord]
    ) -> list["ScheduledNotification"]:
        return [ScheduledNotification(record, self) for record in records]


class ScheduledNotification:
    """Handle over one scheduled notification record."""

    def __init__(
        self, record: ScheduledNotificationRecord, scheduler: NotificationScheduler
    ) -> None:
        self._record = record
        self._scheduler = scheduler

    def __repr__(self) -> str:
        return (
            f"<ScheduledNotification id={self._record.id} "
            f"type={self._record.notification_type} status={self._record.status.value}>"
        )

    @property
    def record(self) -> ScheduledNotificationRecord:
        return self._record

    @property
    def _store(self) -> ScheduledNotificationStore:
        return self._scheduler.store

    def refresh(self) -> "ScheduledNotification":
        """Reload the record from the store."""

        record = self._store.get(self._record.id)
        if record is None:
            raise ScheduledNotificationNotFound(self._record.id)
        self._record = record
        return self

    # Transitions -----------------------------------------------------------------

    def cancel(self) -> None:
        """Cancel the notification.

        Sent notifications can never be cancelled. Cancelling an already
        cancelled notification keeps the original ``cancelled_at``.
        """

        if self._record.sent_at is not None:
            raise NotificationAlreadySent(self._record.id)
        if self._record.cancelled_at is not None:
            return

        if self._mark_cancelled():
            logger.info("Cancelled scheduled notification #%s", self._record.id)
            return

        self.refresh()
        if self._record.sent_at is not None:
            raise NotificationAlreadySent(self._record.id)

    def send_now(self) -> None:
        """Dispatch the notification immediately and record ``sent_at``.

        ``sent_at`` is written only after the dispatcher returns; a dispatcher
        exception propagates and leaves the record pending. The re-read, the
        dispatch and the ``sent_at`` write run under the store's row lock, so
        a concurrent sender blocks until this one commits and then fails with
        ``NotificationAlreadySent``. When the notification's
        ``should_interrupt(target)`` hook returns true the record is cancelled
        instead.
        """

        self._ensure_sendable()
        record_id = self._record.id

        with self._scheduler.sending(record_id), self._store.lock_for_update(
            record_id
        ) as record:
            if record is None:
                raise ScheduledNotificationNotFound(record_id)
            self._record = record
            self._ensure_sendable()

            target, notification = self._rehydrate()
            if _should_interrupt(notification, target):
                if not self._mark_cancelled():
                    self.refresh()
                    self._ensure_sendable()
                logger.info(
                    "Scheduled notification #%s interrupted by %s; cancelled instead of sent",
                    record_id,
                    self._record.notification_type,
                )
                return

            self._scheduler.dispatcher.dispatch(target, notification)

            sent = self._store.update_fields(
                record_id,
                {"sent_at": now_in_app_timezone()},
                require_unsent=True,
                require_uncancelled=True,
            )
            self.refresh()

        if not sent:
            # Another caller won the race after our dispatch.
            logger.warning(
                "Scheduled notification #%s changed state while being dispatched",
                self._record.id,
            )
            self._ensure_sendable()
        logger.info(
            "Sent scheduled notification #%s (%s)",
            self._record.id,
            self._record.notification_type,
        )

    def reschedule(self, send_at: datetime | str, force: bool = False) -> "ScheduledNotification":
        """Move ``send_at`` of this same record.

        Without ``force`` only pending notifications can be rescheduled. With
        ``force`` the terminal guards are skipped: this is an administrative
        escape hatch and the existing ``sent_at``/``cancelled_at`` values are
        preserved as an audit trail, so a forced reschedule does not by itself
        make the record dispatchable again.
        """

        when = coerce_send_at(send_at)
        if not force:
            self._ensure_reschedulable()

        updated = self._store.update_fields(
            self._record.id,
            {"send_at": when},
            require_unsent=not force,
            require_uncancelled=not force,
        )
        previous_status = self._record.status
        self.refresh()
        if not updated:
            self._ensure_reschedulable()

        if force and previous_status is not NotificationStatus.PENDING:
            logger.warning(
                "Forced reschedule of %s notification #%s to %s",
                previous_status.value,
                self._record.id,
                when.isoformat(),
            )
        else:
            logger.info(
                "Rescheduled notification #%s to %s", self._record.id, when.isoformat()
            )
        return self

    def schedule_again_at(self, send_at: datetime | str) -> "ScheduledNotification":
        """Create a successor record with the same payload at ``send_at``.

        This record keeps its disposition and only gets ``rescheduled_at``.
        Called on a pending record, both records stay due: cancel this one
        first when the successor is meant to replace it.
        """

        when = coerce_send_at(send_at)
        record = self._record
        successor = self._store.create(
            {
                "target_id": record.target_id,
                "target_type": record.target_type,
                "target": record.target,
                "notification_type": record.notification_type,
                "notification": record.notification,
                "send_at": when,
            }
        )
        self._store.update_fields(
            record.id,
            {"rescheduled_at": now_in_app_timezone()},
            require_not_rescheduled=True,
        )
        self.refresh()
        logger.info(
            "Scheduled notification #%s again as #%s at %s",
            record.id,
            successor.id,
            when.isoformat(),
        )
        return ScheduledNotification(successor, self._scheduler)

    # Status queries ----------------------------------------------------------------

    def is_sent(self) -> bool:
        return self._record.sent_at is not None

    def is_cancelled(self) -> bool:
        return self._record.cancelled_at is not None

    def is_rescheduled(self) -> bool:
        return self._record.rescheduled_at is not None

    def should_interrupt(self) -> bool:
        """Ask the stored notification whether delivery should be skipped."""

        target, notification = self._rehydrate()
        return _should_interrupt(notification, target)

    def get_status(self) -> NotificationStatus:
        return self._record.status

    # Accessors ---------------------------------------------------------------------

    def get_id(self) -> int | None:
        return self._record.id

    def get_type(self) -> str:
        return self._record.notification_type

    def get_target_type(self) -> str:
        return self._record.target_type

    def get_target_id(self) -> str | None:
        return self._record.target_id

    def get_send_at(self) -> datetime:
        return self._record.send_at

    def get_sent_at(self) -> datetime | None:
        return self._record.sent_at

    def get_cancelled_at(self) -> datetime | None:
        return self._record.cancelled_at

    def get_rescheduled_at(self) -> datetime | None:
        return self._record.rescheduled_at

    def get_created_at(self) -> datetime | None:
        return self._record.created_at

    def get_updated_at(self) -> datetime | None:
        return self._record.updated_at

    # Internals ---------------------------------------------------------------------

    def _ensure_sendable(self) -> None:
        if self._record.cancelled_at is not None:
            raise NotificationCancelled(self._record.id)
        if self._record.sent_at is not None:
            raise NotificationAlreadySent(self._record.id)

    def _ensure_reschedulable(self) -> None:
        if self._record.sent_at is not None:
            raise NotificationAlreadySent(self._record.id)
        if self._record.cancelled_at is not None:
            raise NotificationCancelled(self._record.id)

    def _mark_cancelled(self) -> bool:
        cancelled = self._store.update_fields(
            self._record.id,
            {"cancelled_at": now_in_app_timezone()},
            require_unsent=True,
            require_uncancelled=True,
        )
        if cancelled:
            self.refresh()
        return cancelled

    def _rehydrate(self) -> tuple[Any, Any]:
        serializer = self._scheduler.serializer
        return (
            serializer.deserialize(self._record.target),
            serializer.deserialize(self._record.notification),
        )


def _should_interrupt(notification: Any, target: Any) -> bool:
    hook = getattr(notification, "should_interrupt", None)
    if not callable(hook):
        return False
    return bool(hook(target))


def build_scheduler(
    session: Session,
    *,
    serializer: PayloadSerializer | None = None,
    dispatcher: DeliveryDispatcher | None = None,
) -> NotificationScheduler:
    """Return a scheduler persisting through ``session``."""

    return NotificationScheduler(
        ScheduledNotificationRepository(session),
        serializer=serializer,
        dispatcher=dispatcher,
    )


__all__ = ["NotificationScheduler", "ScheduledNotification", "build_scheduler"]
