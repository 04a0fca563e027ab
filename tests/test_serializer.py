"""Tests for the pickle-backed payload serializer."""

from __future__ import annotations

import pytest

from doubles import User, Welcome
from snooze.infrastructure.serializer import PickleSerializer


def test_payloads_are_stored_as_ascii_text() -> None:
    serializer = PickleSerializer()

    payload = serializer.serialize(User(id=1, name="Ada"))

    assert payload.isascii()
    assert serializer.deserialize(payload) == User(id=1, name="Ada")


def test_unpicklable_values_are_rejected() -> None:
    with pytest.raises(ValueError, match="cannot be serialized"):
        PickleSerializer().serialize(Welcome(new_user_id=lambda: 1))


def test_corrupted_payloads_are_rejected() -> None:
    with pytest.raises(ValueError, match="not valid base64"):
        PickleSerializer().deserialize("not base64!")
