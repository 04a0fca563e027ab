"""Persistence helpers for scheduled notification records."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Query, Session

from snooze.domain.entities import ScheduledNotificationRecord, TargetIdentity
from snooze.infrastructure.models import ScheduledNotificationModel
from snooze.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)

logger = logging.getLogger(__name__)

_WRITABLE_FIELDS = frozenset(
    {
        "target_id",
        "target_type",
        "target",
        "notification_type",
        "notification",
        "send_at",
        "sent_at",
        "rescheduled_at",
        "cancelled_at",
    }
)
_DATETIME_FIELDS = frozenset({"send_at", "sent_at", "rescheduled_at", "cancelled_at"})


class ScheduledNotificationRepository:
    """Provide storage operations for :class:`ScheduledNotificationRecord` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, values: Mapping[str, Any]) -> ScheduledNotificationRecord:
        model = ScheduledNotificationModel(**self._to_columns(values))
        now = ensure_app_naive_datetime(now_in_app_timezone())
        model.created_at = now
        model.updated_at = now
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        logger.debug(
            "Stored scheduled notification %s (%s)", model.id, model.notification_type
        )
        return self._to_entity(model)

    def get(self, record_id: int) -> ScheduledNotificationRecord | None:
        model = self.session.get(ScheduledNotificationModel, record_id, populate_existing=True)
        return self._to_entity(model) if model else None

    @contextmanager
    def lock_for_update(
        self, record_id: int
    ) -> Iterator[ScheduledNotificationRecord | None]:
        """Read one record with ``SELECT ... FOR UPDATE`` and hold the row lock.

        The lock lasts until the next commit, so a guarded write issued inside
        the block releases it together with the change. An exception rolls the
        transaction back. SQLite has no row locks and ignores the clause.
        """

        model = (
            self.session.query(ScheduledNotificationModel)
            .populate_existing()
            .with_for_update()
            .filter(ScheduledNotificationModel.id == record_id)
            .one_or_none()
        )
        try:
            yield self._to_entity(model) if model else None
        except Exception:
            self.session.rollback()
            raise
        self.session.commit()

    def list_by_type(
        self, notification_type: str, *, include_sent: bool = False
    ) -> Sequence[ScheduledNotificationRecord]:
        query = self._base_query(include_sent=include_sent).filter(
            ScheduledNotificationModel.notification_type == notification_type
        )
        return [self._to_entity(model) for model in query.all()]

    def list_all(self, *, include_sent: bool = False) -> Sequence[ScheduledNotificationRecord]:
        query = self._base_query(include_sent=include_sent)
        return [self._to_entity(model) for model in query.all()]

    def list_by_target(self, identity: TargetIdentity) -> Sequence[ScheduledNotificationRecord]:
        query = self._filter_identity(self._base_query(include_sent=True), identity)
        return [self._to_entity(model) for model in query.all()]

    def list_due(
        self, now: datetime, *, not_before: datetime | None = None
    ) -> Sequence[ScheduledNotificationRecord]:
        query = (
            self.session.query(ScheduledNotificationModel)
            .populate_existing()
            .filter(ScheduledNotificationModel.sent_at.is_(None))
            .filter(ScheduledNotificationModel.cancelled_at.is_(None))
            .filter(ScheduledNotificationModel.send_at <= ensure_app_naive_datetime(now))
        )
        if not_before is not None:
            query = query.filter(
                ScheduledNotificationModel.send_at >= ensure_app_naive_datetime(not_before)
            )
        query = query.order_by(
            ScheduledNotificationModel.send_at.asc(), ScheduledNotificationModel.id.asc()
        )
        return [self._to_entity(model) for model in query.all()]

    def update_fields(
        self,
        record_id: int,
        values: Mapping[str, Any],
        *,
        require_unsent: bool = False,
        require_uncancelled: bool = False,
        require_not_rescheduled: bool = False,
    ) -> bool:
        """Apply ``values`` to one record in a single conditional statement.

        Returns ``False`` when the record is missing or one of the guards no
        longer holds.
        """

        query = self.session.query(ScheduledNotificationModel).filter(
            ScheduledNotificationModel.id == record_id
        )
        if require_unsent:
            query = query.filter(ScheduledNotificationModel.sent_at.is_(None))
        if require_uncancelled:
            query = query.filter(ScheduledNotificationModel.cancelled_at.is_(None))
        if require_not_rescheduled:
            query = query.filter(ScheduledNotificationModel.rescheduled_at.is_(None))
        updated = query.update(self._to_update(values), synchronize_session=False)
        self.session.commit()
        return updated == 1

    def bulk_update_where(
        self,
        identity: TargetIdentity,
        values: Mapping[str, Any],
        *,
        require_unsent: bool = True,
        require_uncancelled: bool = True,
    ) -> int:
        """Apply ``values`` to every record of ``identity`` matching the guards."""

        query = self._filter_identity(
            self.session.query(ScheduledNotificationModel), identity
        )
        if require_unsent:
            query = query.filter(ScheduledNotificationModel.sent_at.is_(None))
        if require_uncancelled:
            query = query.filter(ScheduledNotificationModel.cancelled_at.is_(None))
        updated = query.update(self._to_update(values), synchronize_session=False)
        self.session.commit()
        return int(updated or 0)

    def _base_query(self, *, include_sent: bool) -> Query:
        # Conditional updates bypass the identity map; reload rows on every read.
        query = self.session.query(ScheduledNotificationModel).populate_existing()
        if not include_sent:
            query = query.filter(ScheduledNotificationModel.sent_at.is_(None))
        return query.order_by(ScheduledNotificationModel.id.asc())

    @staticmethod
    def _filter_identity(query: Query, identity: TargetIdentity) -> Query:
        query = query.filter(ScheduledNotificationModel.target_type == identity.target_type)
        if identity.is_anonymous:
            return query.filter(ScheduledNotificationModel.target_id.is_(None))
        return query.filter(ScheduledNotificationModel.target_id == identity.key)

    @staticmethod
    def _to_columns(values: Mapping[str, Any]) -> dict[str, Any]:
        unknown = set(values) - _WRITABLE_FIELDS
        if unknown:
            msg = f"Unknown scheduled notification fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        columns: dict[str, Any] = {}
        for name, value in values.items():
            if name in _DATETIME_FIELDS:
                value = ensure_app_naive_datetime(value)
            columns[name] = value
        return columns

    @classmethod
    def _to_update(cls, values: Mapping[str, Any]) -> dict[Any, Any]:
        columns = cls._to_columns(values)
        columns["updated_at"] = ensure_app_naive_datetime(now_in_app_timezone())
        return {
            getattr(ScheduledNotificationModel, name): value
            for name, value in columns.items()
        }

    @staticmethod
    def _to_entity(model: ScheduledNotificationModel) -> ScheduledNotificationRecord:
        return ScheduledNotificationRecord(
            id=model.id,
            target_id=model.target_id,
            target_type=model.target_type,
            target=model.target,
            notification_type=model.notification_type,
            notification=model.notification,
            send_at=ensure_app_timezone(model.send_at),
            sent_at=ensure_app_timezone(model.sent_at),
            rescheduled_at=ensure_app_timezone(model.rescheduled_at),
            cancelled_at=ensure_app_timezone(model.cancelled_at),
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["ScheduledNotificationRepository"]
