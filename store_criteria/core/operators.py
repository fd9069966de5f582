"""Filter operator and order direction definitions with input normalization."""

from __future__ import annotations

from collections.abc import Sequence as SequenceABC
from datetime import date
from enum import Enum
from typing import Any, Mapping

from .errors import ValidationError
from .types import FilterValue


class Operator(str, Enum):
    """Closed set of comparison operators.

    Member values are the store-native operator codes.
    """

    EQUAL = "eq"
    GREATER = "gt"
    LESS = "lt"
    GREATER_EQUAL = "gte"
    LESS_EQUAL = "lte"
    NOT_EQUAL = "neq"
    IN = "in"
    IS = "is"
    LIKE = "like"
    ILIKE = "ilike"
    ARRAY_INTERSECTS = "ov"


class Direction(str, Enum):
    """Sort direction of one order clause."""

    ASCENDING = "asc"
    DESCENDING = "desc"


OperatorInput = str | Operator
DirectionInput = str | Direction

# Names still sent by older clients.
OPERATOR_ALIASES: Mapping[str, Operator] = {
    "major": Operator.GREATER,
    "minor": Operator.LESS,
    "major_equal": Operator.GREATER_EQUAL,
    "minor_equal": Operator.LESS_EQUAL,
}

DIRECTION_ALIASES: Mapping[str, Direction] = {
    "ascending": Direction.ASCENDING,
    "ascendent": Direction.ASCENDING,
    "descending": Direction.DESCENDING,
    "descendent": Direction.DESCENDING,
}


def normalize_operator(operator: OperatorInput) -> Operator:
    """Normalize operator input into an `Operator` value.

    Accepts a member, a member name or a native code, case-insensitively.

    Raises:
        ValidationError: If the operator is outside the closed set.
    """

    if isinstance(operator, Operator):
        return operator
    if not isinstance(operator, str):
        raise ValidationError(
            f"Invalid operator type: {type(operator).__name__}",
            field="operator",
            value=operator,
        )

    key = operator.strip()
    if key.upper() in Operator.__members__:
        return Operator[key.upper()]
    if key.lower() in Operator._value2member_map_:
        return Operator(key.lower())
    if key.lower() in OPERATOR_ALIASES:
        return OPERATOR_ALIASES[key.lower()]
    raise ValidationError(f"Invalid operator '{operator}'", field="operator", value=operator)


def normalize_direction(direction: DirectionInput) -> Direction:
    """Normalize order direction input into a `Direction` value."""

    if isinstance(direction, Direction):
        return direction
    if isinstance(direction, str):
        key = direction.strip().lower()
        if key in Direction._value2member_map_:
            return Direction(key)
        if key in DIRECTION_ALIASES:
            return DIRECTION_ALIASES[key]
    raise ValidationError(
        f"Invalid order direction '{direction}'",
        field="orderDirection",
        value=direction,
    )


_IS_OPERANDS = frozenset({"null", "true", "false"})


def validate_filter_value(
    value: Any,
    *,
    field: str = "value",
    operator: Operator | None = None,
) -> FilterValue:
    """Check that a filter value has one of the legal shapes.

    Legal shapes are `None`, a string, a number, a date, or a homogeneous
    list of strings or of numbers. Lists are returned as tuples. When
    `operator` is given the shape must also suit it: `IN` takes a list,
    `ARRAY_INTERSECTS` a list or a scalar, `IS` only null/true/false, and
    every other operator a scalar or `None`.
    """

    checked = _validate_shape(value, field)
    if operator is not None:
        _check_operator_value(operator, checked, field)
    return checked


def _check_operator_value(operator: Operator, value: FilterValue, field: str) -> None:
    is_list = isinstance(value, tuple)
    if operator is Operator.IN:
        ok = is_list
        expected = "a list"
    elif operator is Operator.ARRAY_INTERSECTS:
        ok = value is not None
        expected = "a list or a scalar"
    elif operator is Operator.IS:
        ok = value is None or (isinstance(value, str) and value.strip().lower() in _IS_OPERANDS)
        expected = "null, 'null', 'true' or 'false'"
    else:
        ok = not is_list
        expected = "a scalar or null"
    if not ok:
        raise ValidationError(
            f"Filter '{field}' with operator {operator.name} expects {expected}, got {value!r}",
            field="filters",
            value=value,
        )


def _validate_shape(value: Any, field: str) -> FilterValue:
    if value is None or isinstance(value, (str, date)):
        return value
    if _is_number(value):
        return value
    if isinstance(value, SequenceABC) and not isinstance(value, (str, bytes)):
        items = tuple(value)
        if all(isinstance(item, str) for item in items):
            return items
        if all(_is_number(item) for item in items):
            return items
        raise ValidationError(
            f"Filter '{field}' list must contain only strings or only numbers",
            field=field,
            value=value,
        )
    raise ValidationError(
        f"Invalid value type for filter '{field}': {type(value).__name__}",
        field=field,
        value=value,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
