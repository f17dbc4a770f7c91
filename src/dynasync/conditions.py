from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from .errors import ValidationError

if TYPE_CHECKING:
    from .codec import AttributeCodec

CONDITION_BLOCKS = ("KeyConditions", "QueryFilter", "ScanFilter")

_OPERATOR_ALIASES = {
    "=": "EQ",
    "!=": "NE",
    "<>": "NE",
    "<": "LT",
    "<=": "LE",
    ">": "GT",
    ">=": "GE",
}
_NO_OPERANDS = {"NULL", "NOT_NULL"}
_SPREAD_OPERATORS = {"BETWEEN", "IN"}


def build_condition(codec: AttributeCodec, name: str, operator: str, *operands: Any) -> dict[str, Any]:
    """Legacy ``{name: {ComparisonOperator, AttributeValueList}}`` condition.

    Operands go through the codec, so dates are written by the record type's date
    policy. The operator is not checked; the store rejects unknown ones.
    """
    cond: dict[str, Any] = {"ComparisonOperator": operator}
    if operands:
        cond["AttributeValueList"] = [codec.encode(value, name) for value in operands]
    return {name: cond}


def merge_conditions(conditions: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    if isinstance(conditions, Mapping):
        return dict(conditions)

    out: dict[str, Any] = {}
    for cond in conditions:
        if not isinstance(cond, Mapping):
            raise ValidationError("conditions must be mappings")
        for name, body in cond.items():
            if name in out:
                raise ValidationError(f"duplicate condition for attribute: {name}")
            out[name] = body
    return out


def where_conditions(codec: AttributeCodec, where: Mapping[str, Any]) -> dict[str, Any]:
    """``{"calendarId": 2, "date BETWEEN": [a, b]}`` -> legacy condition block."""
    out: dict[str, Any] = {}
    for key, value in where.items():
        parts = key.split()
        if len(parts) == 1:
            name, op = parts[0], "EQ"
        elif len(parts) == 2:
            name, op = parts[0], parts[1].upper()
        else:
            raise ValidationError(f"invalid filter key: {key!r}")
        op = _OPERATOR_ALIASES.get(op, op)

        if op in _NO_OPERANDS:
            operands: tuple[Any, ...] = ()
        elif op in _SPREAD_OPERATORS and isinstance(value, (list, tuple, set, frozenset)):
            operands = tuple(value)
        else:
            operands = (value,)

        if name in out:
            raise ValidationError(f"duplicate condition for attribute: {name}")
        out.update(build_condition(codec, name, op, *operands))
    return out
