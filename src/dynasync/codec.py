from __future__ import annotations

import base64
import binascii
import json
import math
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from .dates import DatePolicy, IsoDatePolicy, deserialize_dates, serialize_dates
from .errors import ValidationError

WIRE_TAGS = frozenset({"S", "N", "B", "SS", "NS", "BS", "BOOL", "NULL", "M", "L"})

_BOOLEAN_LITERALS = {"true": True, "false": False}

# floats are exact integers only up to here
_MAX_EXACT_FLOAT_INT = 2**53


def is_wire_attribute(value: Any) -> bool:
    return isinstance(value, Mapping) and len(value) == 1 and next(iter(value)) in WIRE_TAGS


def _is_json_shaped(value: str) -> bool:
    if value == "null":
        return True
    if len(value) < 2:
        return False
    first, last = value[0], value[-1]
    return (first == "{" and last == "}") or (first == "[" and last == "]")


def _format_number(value: int | float | Decimal) -> str:
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValidationError(f"numbers must be finite: {value}")
        return str(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValidationError(f"numbers must be finite: {value}")
        if value.is_integer() and abs(value) < _MAX_EXACT_FLOAT_INT:
            return str(int(value))
        return repr(value)
    return str(value)


def _decode_number(raw: str) -> int | float:
    if any(c in raw for c in ".eE"):
        return float(raw)
    return int(raw)


def _decode_binary(raw: Any) -> bytes:
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw)
    if isinstance(raw, str):
        try:
            return base64.b64decode(raw, validate=True)
        except binascii.Error as err:
            raise ValidationError("binary value is not valid base64") from err
    raise ValidationError(f"binary value must be bytes or a base64 string, got {type(raw).__name__}")


def _set_member_string(attr: Mapping[str, Any]) -> str:
    ((tag, raw),) = attr.items()
    if tag == "B":
        return base64.b64encode(raw).decode("ascii")
    return str(raw)


class AttributeCodec:
    """Converts native values to single-tag wire attributes and back.

    Strings carry every value that has no tag of its own (booleans, dates, records,
    ``None``), so decoding a ``S`` attribute is a best-effort guess: ``"true"`` and
    ``"false"`` become booleans, anything the date policy recognizes becomes a
    ``datetime``, and JSON-shaped text (``{...}``, ``[...]``, ``null``) is parsed.
    A genuine string that happens to look like one of those comes back as the
    guessed type. Items written by earlier versions depend on this, so it is kept.

    Dates always decode timezone-aware in UTC, so a naive ``datetime`` does not
    compare equal to its own round trip; compare against ``value.replace(tzinfo=UTC)``.
    Integral floats below 2**53 are written without a fraction and decode as ``int``.
    """

    def __init__(self, date_policy: DatePolicy | None = None) -> None:
        self._date_policy: DatePolicy = date_policy or IsoDatePolicy()

    @property
    def date_policy(self) -> DatePolicy:
        return self._date_policy

    def encode(self, value: Any, name: str | None = None) -> dict[str, Any]:
        # bool before numbers: bool is an int subclass
        if isinstance(value, bool):
            return {"S": "true" if value else "false"}
        if isinstance(value, (int, float, Decimal)):
            return {"N": _format_number(value)}
        if isinstance(value, datetime):
            return {"S": self._date_policy.serialize(name, value)}
        if isinstance(value, str):
            return {"S": value}
        if isinstance(value, (bytes, bytearray, memoryview)):
            return {"B": bytes(value)}
        if isinstance(value, (list, tuple, set, frozenset)):
            return self._encode_set(value, name)
        return {"S": self._to_json(value, name)}

    def decode(self, attr: Mapping[str, Any], name: str | None = None) -> Any:
        if not isinstance(attr, Mapping) or len(attr) != 1:
            raise ValidationError("wire attribute must have exactly one type tag")

        ((tag, raw),) = attr.items()

        if tag == "N":
            return _decode_number(raw)
        if tag == "S":
            return self._decode_string(raw, name)
        if tag == "B":
            return _decode_binary(raw)
        if tag in {"NS", "SS", "BS"}:
            scalar = tag[0]
            return [self.decode({scalar: member}, name) for member in raw]
        if tag == "BOOL":
            return bool(raw)
        if tag == "NULL":
            return None
        if tag == "M":
            return {k: self.decode(v, k) for k, v in raw.items()}
        if tag == "L":
            return [self.decode(v, name) for v in raw]

        raise ValidationError(f"unsupported wire attribute type: {tag}")

    def encode_item(self, attributes: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
        return {name: self.encode(value, name) for name, value in attributes.items()}

    def decode_item(self, item: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
        return {name: self.decode(attr, name) for name, attr in item.items()}

    def _encode_set(self, values: Any, name: str | None) -> dict[str, Any]:
        if not values:
            raise ValidationError(f"empty arrays cannot be stored: {name or 'value'}")

        encoded: list[dict[str, Any]] = []
        for member in values:
            if isinstance(member, (list, tuple, set, frozenset)):
                encoded.append({"S": self._to_json(list(member), name)})
            else:
                encoded.append(self.encode(member, name))

        tags = {tag for attr in encoded for tag in attr}
        members: list[Any]
        if tags == {"N"}:
            set_tag, members = "NS", [attr["N"] for attr in encoded]
        elif tags == {"B"}:
            set_tag, members = "BS", [attr["B"] for attr in encoded]
        else:
            set_tag, members = "SS", [_set_member_string(attr) for attr in encoded]

        if len(set(members)) != len(members):
            raise ValidationError(f"set members must be unique once encoded: {name or 'value'}")

        return {set_tag: members}

    def _decode_string(self, raw: str, name: str | None) -> Any:
        if raw in _BOOLEAN_LITERALS:
            return _BOOLEAN_LITERALS[raw]
        if _is_json_shaped(raw):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                return raw
            return deserialize_dates(parsed, self._date_policy, name)
        return deserialize_dates(raw, self._date_policy, name)

    def _to_json(self, value: Any, name: str | None) -> str:
        try:
            return json.dumps(
                serialize_dates(value, self._date_policy, name),
                separators=(",", ":"),
                sort_keys=True,
                allow_nan=False,
                default=self._json_default,
            )
        except (TypeError, ValueError) as err:
            raise ValidationError(f"value cannot be encoded as JSON: {name or type(value).__name__}") from err

    def _json_default(self, value: Any) -> Any:
        from .model import Collection, Record

        if isinstance(value, (Record, Collection)):
            return value.to_json_value()
        if isinstance(value, datetime):
            return self._date_policy.serialize(None, value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return base64.b64encode(bytes(value)).decode("ascii")
        if isinstance(value, Decimal):
            return int(value) if value == value.to_integral_value() else float(value)
        if isinstance(value, (set, frozenset)):
            return serialize_dates(list(value), self._date_policy)
        raise TypeError(f"unsupported type: {type(value).__name__}")


_default_codec = AttributeCodec()


def encode_attribute(value: Any, name: str | None = None) -> dict[str, Any]:
    return _default_codec.encode(value, name)


def decode_attribute(attr: Mapping[str, Any], name: str | None = None) -> Any:
    return _default_codec.decode(attr, name)
