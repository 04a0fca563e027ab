"""Tests for the SQLAlchemy record store."""

from __future__ import annotations

from datetime import timedelta

import pytest

from snooze.domain.entities import TargetIdentity
from snooze.infrastructure.models import ScheduledNotificationModel
from snooze.infrastructure.repositories import ScheduledNotificationRepository
from snooze.utils import now_in_app_timezone


def _values(**overrides):
    values = {
        "target_id": "1",
        "target_type": "accounts.User",
        "target": "dGFyZ2V0",
        "notification_type": "mail.Welcome",
        "notification": "cGF5bG9hZA==",
        "send_at": now_in_app_timezone() + timedelta(minutes=5),
    }
    values.update(overrides)
    return values


def test_create_assigns_identity_and_bookkeeping(repository: ScheduledNotificationRepository) -> None:
    record = repository.create(_values())

    assert record.id is not None
    assert record.created_at is not None and record.created_at.tzinfo is not None
    assert record.updated_at is not None
    assert record.send_at.tzinfo is not None
    assert record.sent_at is None and record.cancelled_at is None
    assert record.identity == TargetIdentity(target_type="accounts.User", key="1")


def test_create_rejects_unknown_fields(repository: ScheduledNotificationRepository) -> None:
    with pytest.raises(ValueError, match="priority"):
        repository.create(_values(priority=1))


def test_guarded_update_refuses_sent_records(repository: ScheduledNotificationRepository) -> None:
    record = repository.create(_values())
    now = now_in_app_timezone()

    assert repository.update_fields(record.id, {"sent_at": now}, require_unsent=True)
    assert not repository.update_fields(
        record.id, {"cancelled_at": now}, require_unsent=True
    )

    stored = repository.get(record.id)
    assert stored is not None
    assert stored.sent_at == now
    assert stored.cancelled_at is None


def test_lock_for_update_yields_record_and_commits_guarded_write(
    repository: ScheduledNotificationRepository,
) -> None:
    record = repository.create(_values())
    now = now_in_app_timezone()

    with repository.lock_for_update(record.id) as locked:
        assert locked is not None and locked.id == record.id
        assert repository.update_fields(locked.id, {"sent_at": now}, require_unsent=True)

    assert repository.get(record.id).sent_at == now

    with repository.lock_for_update(999) as missing:
        assert missing is None


def test_lock_for_update_rolls_back_on_error(
    repository: ScheduledNotificationRepository,
) -> None:
    record = repository.create(_values())

    with pytest.raises(RuntimeError):
        with repository.lock_for_update(record.id):
            repository.session.query(ScheduledNotificationModel).filter(
                ScheduledNotificationModel.id == record.id
            ).update({ScheduledNotificationModel.notification_type: "mail.Changed"})
            raise RuntimeError("dispatch failed")

    assert repository.get(record.id).notification_type == "mail.Welcome"


def test_update_fields_reports_missing_records(repository: ScheduledNotificationRepository) -> None:
    assert not repository.update_fields(999, {"cancelled_at": now_in_app_timezone()})


def test_bulk_update_counts_matching_rows(repository: ScheduledNotificationRepository) -> None:
    first = repository.create(_values())
    repository.create(_values())
    repository.create(_values(target_id="2"))
    repository.update_fields(first.id, {"sent_at": now_in_app_timezone()})

    count = repository.bulk_update_where(
        TargetIdentity(target_type="accounts.User", key="1"),
        {"cancelled_at": now_in_app_timezone()},
    )

    assert count == 1
    cancelled = [record for record in repository.list_all(include_sent=True) if record.cancelled_at]
    assert len(cancelled) == 1


def test_list_due_orders_by_send_at_and_honours_window(
    repository: ScheduledNotificationRepository,
) -> None:
    now = now_in_app_timezone()
    late = repository.create(_values(send_at=now - timedelta(minutes=1)))
    stale = repository.create(_values(send_at=now - timedelta(days=3)))
    earlier = repository.create(_values(send_at=now - timedelta(minutes=10)))
    repository.create(_values(send_at=now + timedelta(minutes=10)))
    cancelled = repository.create(_values(send_at=now - timedelta(minutes=2)))
    repository.update_fields(cancelled.id, {"cancelled_at": now})

    assert [record.id for record in repository.list_due(now)] == [
        stale.id,
        earlier.id,
        late.id,
    ]
    assert [
        record.id for record in repository.list_due(now, not_before=now - timedelta(hours=1))
    ] == [earlier.id, late.id]


def test_list_by_target_matches_anonymous_identity(
    repository: ScheduledNotificationRepository,
) -> None:
    repository.create(_values(target_id=None, target_type="mail.Guest"))
    repository.create(_values())

    records = repository.list_by_target(TargetIdentity(target_type="mail.Guest"))

    assert len(records) == 1
    assert records[0].identity.is_anonymous
