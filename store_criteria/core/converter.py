"""Criteria to `StoreQuery` conversion.

This module centralizes the translation of validated criteria into store
operations: soft-delete visibility, per-operator value formatting, and
ordering. It never talks to a store, so its output can be inspected
directly.
"""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from datetime import date
from typing import Any, Optional

from .config import QueryConfig
from .criteria import Criteria, Filter
from .errors import ValidationError
from .operators import Operator
from .query_spec import StoreQuery
from .types import FilterValue, FormattedValue


def format_value(value: FilterValue) -> FormattedValue:
    """Format a filter value for generic operators.

    `None` stays `None`, sequences become `(v1,v2,...)`, everything else its
    string form (dates in ISO-8601).
    """

    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return f"({','.join(_scalar_text(item) for item in value)})"
    return _scalar_text(value)


def format_set_literal(value: FilterValue) -> str:
    """Format a value as a store-native set literal `{v1,v2,...}`."""

    if value is None:
        return "{}"
    if isinstance(value, (list, tuple)):
        return f"{{{','.join(_scalar_text(item) for item in value)}}}"
    return f"{{{_scalar_text(value)}}}"


def _scalar_text(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


class QueryConverter:
    """Maps `Criteria` into `StoreQuery` values using injected configuration."""

    def __init__(self, config: Optional[QueryConfig] = None):
        self.config = config or QueryConfig()

    def convert(self, criteria: Criteria) -> StoreQuery:
        """Build the store query for one criteria.

        Raises:
            ValidationError: If a filter carries an operator outside the
                closed set or a malformed value.
        """

        filters = [self._coerce_filter(item, i) for i, item in enumerate(criteria.filters or ())]

        strategy = self.config.strategy_for(criteria.table)
        query = StoreQuery.select(criteria.table, criteria.columns, count=strategy.exact_count)
        query = self._apply_soft_delete(query, criteria.table)

        for item in filters:
            query = query.filter(item.field, item.operator, self.format_filter(item))

        if criteria.order_by is not None:
            query = query.order(criteria.order_by.field, ascending=criteria.order_by.ascending)
        return query

    def convert_lookup(
        self,
        table: str,
        field: str,
        value: Any,
        *,
        columns: str = "*",
        check_soft_delete: bool = True,
    ) -> StoreQuery:
        """Build a query selecting at most one row where `field = value`."""

        lookup = Filter.of(field, Operator.EQUAL, value)
        query = StoreQuery.select(table, columns)
        if check_soft_delete:
            query = self._apply_soft_delete(query, table)
        return query.filter(lookup.field, lookup.operator, self.format_filter(lookup)).range(0, 0)

    @staticmethod
    def format_filter(item: Filter) -> FormattedValue:
        """Format the value of one filter for its operator."""

        if item.operator is Operator.ARRAY_INTERSECTS:
            return format_set_literal(item.value)
        return format_value(item.value)

    def _apply_soft_delete(self, query: StoreQuery, table: str) -> StoreQuery:
        if not self.config.is_soft_delete(table):
            return query
        return query.filter(self.config.soft_delete_column, Operator.IS, None)

    @staticmethod
    def _coerce_filter(item: Any, index: int) -> Filter:
        if isinstance(item, Filter):
            return item
        if isinstance(item, MappingABC):
            return Filter.from_mapping(item, index=index)
        raise ValidationError(
            f"Filter #{index} must be a Filter, got {type(item).__name__}",
            field="filters",
            value=item,
        )
