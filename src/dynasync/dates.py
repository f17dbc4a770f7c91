from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

ISO_DATE_PATTERN = re.compile(r"^\d{4}(-\d{2}){2}T\d{2}(:\d{2}){2}\.\d{3}Z$")


class DatePolicy(Protocol):
    """How a record type writes dates into string attributes and recognizes them on the way back.

    ``is_serialized_date(name, serialize(name, d))`` must hold for every date ``d``.
    ``name`` is the attribute being converted, or ``None`` when there is no attribute
    (an expression value, a bare codec call).
    """

    def serialize(self, name: str | None, value: datetime) -> str: ...

    def deserialize(self, name: str | None, value: str) -> datetime: ...

    def is_serialized_date(self, name: str | None, value: str) -> bool: ...


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class IsoDatePolicy:
    """``YYYY-MM-DDTHH:mm:ss.sssZ`` in UTC, millisecond precision. Naive datetimes are taken as UTC."""

    def serialize(self, name: str | None, value: datetime) -> str:
        v = to_utc(value)
        return (
            f"{v.year:04d}-{v.month:02d}-{v.day:02d}"
            f"T{v.hour:02d}:{v.minute:02d}:{v.second:02d}.{v.microsecond // 1000:03d}Z"
        )

    def deserialize(self, name: str | None, value: str) -> datetime:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=UTC)

    def is_serialized_date(self, name: str | None, value: str) -> bool:
        return ISO_DATE_PATTERN.match(value) is not None


def serialize_dates(value: Any, policy: DatePolicy, name: str | None = None) -> Any:
    if isinstance(value, datetime):
        return policy.serialize(name, value)
    if isinstance(value, Mapping):
        return {k: serialize_dates(v, policy, k) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_dates(v, policy, name) for v in value]
    return value


def deserialize_dates(value: Any, policy: DatePolicy, name: str | None = None) -> Any:
    if isinstance(value, str):
        if policy.is_serialized_date(name, value):
            try:
                return policy.deserialize(name, value)
            except ValueError:
                # matches the shape but is not a real date (month 13, ...)
                return value
        return value
    if isinstance(value, dict):
        return {k: deserialize_dates(v, policy, k) for k, v in value.items()}
    if isinstance(value, list):
        return [deserialize_dates(v, policy, name) for v in value]
    return value
