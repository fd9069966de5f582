"""Criteria model: validated, immutable description of one paginated query.

A `Criteria` is built once per request from raw, string-encoded inputs (the
shape a query string delivers them in) and is never mutated afterwards.
Every field is validated eagerly; a `ValidationError` names the offending
input so callers can report it back.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Sequence, Union

from .errors import ValidationError
from .operators import (
    Direction,
    DirectionInput,
    Operator,
    OperatorInput,
    normalize_direction,
    normalize_operator,
    validate_filter_value,
)
from .types import FilterValue

_INT_PATTERN = re.compile(r"[+-]?\d+")


@dataclass(frozen=True)
class Filter:
    """One `field <operator> value` predicate requested by the caller.

    Attributes:
        field: Column name the predicate applies to.
        operator: Operator, normalized from name, native code or alias.
        value: `None`, a scalar, a date, or a tuple of strings or numbers.
    """

    field: str
    operator: Operator
    value: FilterValue = None

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field.strip():
            raise ValidationError("Filter field must be a non-empty string", field="field", value=self.field)
        object.__setattr__(self, "operator", normalize_operator(self.operator))
        object.__setattr__(
            self,
            "value",
            validate_filter_value(self.value, field=self.field, operator=self.operator),
        )

    @classmethod
    def of(cls, field: str, operator: OperatorInput, value: Any = None) -> Filter:
        """Build a filter from loosely typed input."""

        return cls(field=field, operator=operator, value=value)  # type: ignore[arg-type]

    @classmethod
    def from_mapping(cls, item: Any, *, index: int = 0) -> Filter:
        """Build a filter from one decoded JSON object.

        Raises:
            ValidationError: If the object lacks `field`, `operator` or `value`.
        """

        if not isinstance(item, MappingABC):
            raise ValidationError(
                f"Filter #{index} must be an object, got {type(item).__name__}",
                field="filters",
                value=item,
            )
        missing = [key for key in ("field", "operator", "value") if key not in item]
        if missing:
            raise ValidationError(
                f"Filter #{index} is missing {', '.join(missing)}",
                field="filters",
                value=item,
            )
        return cls.of(item["field"], item["operator"], item["value"])

    def to_dict(self, *, native: bool = True) -> dict[str, Any]:
        """Return a JSON-friendly representation.

        Args:
            native: Use the store-native operator code instead of its name.
        """

        value: Any = self.value
        if isinstance(value, tuple):
            value = list(value)
        elif isinstance(value, date):
            value = value.isoformat()
        operator = self.operator.value if native else self.operator.name
        return {"field": self.field, "operator": operator, "value": value}


@dataclass(frozen=True)
class Order:
    """Single-key ordering."""

    field: str
    direction: Direction = Direction.ASCENDING

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field.strip():
            raise ValidationError("Order field must be a non-empty string", field="orderBy", value=self.field)
        object.__setattr__(self, "direction", normalize_direction(self.direction))

    @property
    def ascending(self) -> bool:
        return self.direction is Direction.ASCENDING


@dataclass(frozen=True)
class Pagination:
    """Explicit limit/offset pair supplied by the caller."""

    limit: int
    offset: int

    def __post_init__(self) -> None:
        for name in ("limit", "offset"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"{name.capitalize()} must be an integer", field=name, value=value)
        if self.limit < 0:
            raise ValidationError("Limit must be non-negative", field="limit", value=self.limit)
        if self.offset < 0:
            raise ValidationError("Offset must be non-negative", field="offset", value=self.offset)

    @classmethod
    def parse(cls, raw_limit: Any, raw_offset: Any) -> Optional[Pagination]:
        """Parse raw limit/offset; both absent returns `None`.

        Blank strings count as absent.

        Raises:
            ValidationError: If only one is given, or either is not a
                non-negative integer.
        """

        raw_limit = _blank_to_none(raw_limit)
        raw_offset = _blank_to_none(raw_offset)
        if raw_limit is None and raw_offset is None:
            return None
        if raw_limit is None:
            raise ValidationError("Offset provided without a limit", field="limit", value=None)
        if raw_offset is None:
            raise ValidationError("Limit provided without an offset", field="offset", value=None)
        return cls(limit=_parse_int(raw_limit, "limit"), offset=_parse_int(raw_offset, "offset"))


@dataclass(frozen=True)
class ImplicitFilter:
    """Equality filter injected by the caller, e.g. scoping to a parent id."""

    field: str
    value: Any

    def to_filter(self) -> Filter:
        return Filter.of(self.field, Operator.EQUAL, self.value)


ImplicitFilterInput = Union[ImplicitFilter, Mapping[str, Any], Sequence[Any]]


@dataclass(frozen=True)
class Criteria:
    """Validated, immutable query description.

    Attributes:
        table: Table or view to query.
        columns: Projection spec passed through to the store (`*` by default).
        filters: Caller filters; `None` when no filtering was requested.
        order_by: Optional single-key ordering.
        limit: Explicit page size, or `None`.
        offset: Explicit start row, or `None`.
    """

    table: str
    columns: str = "*"
    filters: Optional[tuple[Filter, ...]] = None
    order_by: Optional[Order] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.table, str) or not self.table.strip():
            raise ValidationError("Table must be a non-empty string", field="table", value=self.table)
        if not self.columns:
            object.__setattr__(self, "columns", "*")
        if self.filters is not None and not isinstance(self.filters, tuple):
            object.__setattr__(self, "filters", tuple(self.filters))
        if (self.limit is None) != (self.offset is None):
            Pagination.parse(self.limit, self.offset)
        elif self.limit is not None:
            Pagination(limit=self.limit, offset=self.offset)  # type: ignore[arg-type]

    @classmethod
    def build(
        cls,
        table: str,
        columns: str = "*",
        raw_filters: Optional[str] = None,
        raw_order_field: Optional[str] = None,
        raw_order_direction: Optional[DirectionInput] = None,
        raw_limit: Any = None,
        raw_offset: Any = None,
        implicit_filter: Optional[ImplicitFilterInput] = None,
    ) -> Criteria:
        """Validate raw request inputs into a `Criteria`.

        Args:
            table: Table or view name.
            columns: Projection spec.
            raw_filters: JSON array of `{field, operator, value}` objects.
            raw_order_field: Order field; ignored unless a direction is given.
            raw_order_direction: Order direction; ignored unless a field is given.
            raw_limit: Page size as string or int.
            raw_offset: Start row as string or int.
            implicit_filter: Extra equality filter appended to the filter set.

        Raises:
            ValidationError: On the first invalid input.
        """

        filters = parse_filters(raw_filters, implicit_filter)
        order_by = parse_order(raw_order_field, raw_order_direction)
        pagination = Pagination.parse(raw_limit, raw_offset)
        return cls(
            table=table,
            columns=columns or "*",
            filters=filters,
            order_by=order_by,
            limit=pagination.limit if pagination else None,
            offset=pagination.offset if pagination else None,
        )

    @property
    def pagination(self) -> Optional[Pagination]:
        if self.limit is None or self.offset is None:
            return None
        return Pagination(limit=self.limit, offset=self.offset)


def parse_filters(
    raw_filters: Optional[str],
    implicit_filter: Optional[ImplicitFilterInput] = None,
) -> Optional[tuple[Filter, ...]]:
    """Decode a raw JSON filter array and append the implicit filter.

    Returns `None` when neither input is given.
    """

    if raw_filters is None and implicit_filter is None:
        return None

    filters: list[Filter] = []
    if raw_filters is not None:
        decoded = _decode_filter_payload(raw_filters)
        filters.extend(Filter.from_mapping(item, index=i) for i, item in enumerate(decoded))

    if implicit_filter is not None:
        filters.append(_coerce_implicit_filter(implicit_filter).to_filter())
    return tuple(filters)


def parse_order(
    raw_order_field: Optional[str],
    raw_order_direction: Optional[DirectionInput],
) -> Optional[Order]:
    """Build an `Order` when both field and direction are present."""

    if raw_order_field is None or raw_order_direction is None:
        return None
    return Order(field=raw_order_field, direction=raw_order_direction)  # type: ignore[arg-type]


def add_filter(raw_filters: Optional[str], new_filter: Filter | Mapping[str, Any]) -> str:
    """Append one filter to a raw JSON filter payload and re-encode it.

    Existing entries are passed through untouched; the new one is validated.
    """

    decoded = _decode_filter_payload(raw_filters) if raw_filters is not None else []
    if not isinstance(new_filter, Filter):
        new_filter = Filter.from_mapping(new_filter, index=len(decoded))
    decoded.append(new_filter.to_dict(native=False))
    return json.dumps(decoded)


def _decode_filter_payload(raw_filters: str) -> list[Any]:
    try:
        decoded = json.loads(raw_filters)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Filters must be a JSON array: {exc}",
            field="filters",
            value=raw_filters,
        ) from exc
    if not isinstance(decoded, list):
        raise ValidationError(
            f"Filters must be a JSON array, got {type(decoded).__name__}",
            field="filters",
            value=raw_filters,
        )
    return decoded


def _coerce_implicit_filter(item: ImplicitFilterInput) -> ImplicitFilter:
    if isinstance(item, ImplicitFilter):
        return item
    if isinstance(item, MappingABC):
        if "field" not in item or "value" not in item:
            raise ValidationError("Implicit filter needs 'field' and 'value'", field="filter", value=item)
        return ImplicitFilter(field=item["field"], value=item["value"])
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return ImplicitFilter(field=item[0], value=item[1])
    raise ValidationError("Implicit filter must be a (field, value) pair", field="filter", value=item)


def _blank_to_none(raw: Any) -> Any:
    if isinstance(raw, str) and not raw.strip():
        return None
    return raw


def _parse_int(raw: Any, name: str) -> int:
    if isinstance(raw, bool):
        raise ValidationError(f"{name.capitalize()} must be an integer", field=name, value=raw)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if _INT_PATTERN.fullmatch(text) is None:
            raise ValidationError(f"{name.capitalize()} must be an integer", field=name, value=raw)
        value = int(text)
    else:
        raise ValidationError(f"{name.capitalize()} must be an integer", field=name, value=raw)
    if value < 0:
        raise ValidationError(f"{name.capitalize()} must be non-negative", field=name, value=raw)
    return value
