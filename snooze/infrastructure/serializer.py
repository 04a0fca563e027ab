"""Opaque storage encoding for notification targets and payloads."""

from __future__ import annotations

import base64
import binascii
import pickle
from typing import Any


class PickleSerializer:
    """Encode arbitrary picklable objects as ASCII text for a ``TEXT`` column.

    Stored payloads are only ever read back by this process' own scheduler;
    never feed it data from an untrusted source.
    """

    def __init__(self, protocol: int = pickle.DEFAULT_PROTOCOL) -> None:
        self._protocol = protocol

    def serialize(self, value: Any) -> str:
        try:
            raw = pickle.dumps(value, protocol=self._protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as exc:
            msg = f"{type(value).__name__} cannot be serialized for storage"
            raise ValueError(msg) from exc
        return base64.b64encode(raw).decode("ascii")

    def deserialize(self, payload: str) -> Any:
        try:
            raw = base64.b64decode(payload.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError) as exc:
            raise ValueError("Stored payload is not valid base64") from exc
        return pickle.loads(raw)


default_serializer = PickleSerializer()


__all__ = ["PickleSerializer", "default_serializer"]
