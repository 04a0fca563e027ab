"""Shared fixtures: an in-memory SQLite store and a recording scheduler."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
for path in (PROJECT_ROOT, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_TIMEZONE", "UTC")

from sqlalchemy.orm import Session

from doubles import INBOX, RecordingDispatcher
from snooze import NotificationScheduler, build_scheduler
from snooze.infrastructure.database import (
    Base,
    build_engine,
    build_session_factory,
    initialize_database,
)
from snooze.infrastructure.repositories import ScheduledNotificationRepository


@pytest.fixture()
def engine():
    """Return a fresh in-memory database with the schema created."""

    engine = build_engine("sqlite://")
    initialize_database(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session(engine):
    db: Session = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def repository(session) -> ScheduledNotificationRepository:
    return ScheduledNotificationRepository(session)


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def scheduler(session, dispatcher) -> NotificationScheduler:
    return build_scheduler(session, dispatcher=dispatcher)


@pytest.fixture()
def inbox():
    INBOX.clear()
    yield INBOX
    INBOX.clear()
