"""SQL compilation of `StoreQuery` values.

Predicates, ordering and the row window of a query are compiled into one
`SELECT` and, when a count is requested, a matching `COUNT(*)` statement
sharing the same `WHERE` fragment and parameters.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ...core.errors import StoreError
from ...core.operators import Operator
from ...core.query_spec import OrderClause, Predicate, RowRange, StoreQuery
from ...core.types import QueryParams
from ..literals import is_operand, predicate_items
from .contracts import DialectPort

COUNT_ALIAS = "__count"

_COMPARISONS = {
    Operator.EQUAL: "=",
    Operator.NOT_EQUAL: "<>",
    Operator.GREATER: ">",
    Operator.GREATER_EQUAL: ">=",
    Operator.LESS: "<",
    Operator.LESS_EQUAL: "<=",
    Operator.LIKE: "LIKE",
}
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?")


@dataclass(frozen=True)
class CompiledFragment:
    """Represents a compiled SQL fragment with its bound parameters."""

    sql: str
    params: QueryParams


@dataclass(frozen=True)
class CompiledQuery:
    """Row statement plus the optional count statement of one query."""

    sql: Optional[str]
    params: QueryParams
    count_sql: Optional[str] = None
    count_params: QueryParams = None


class _ParamNameGenerator:
    """Generates safe, unique parameter names for named SQL styles."""

    def __init__(self) -> None:
        self._counter = 0

    def next(self, base: str) -> str:
        """Return a deterministic parameter name based on a column hint."""

        self._counter += 1
        safe = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in base)
        return f"{safe}_{self._counter}"


def compile_query(query: StoreQuery, dialect: DialectPort) -> CompiledQuery:
    """Compile a full `StoreQuery` for one dialect.

    `sql` is `None` for head-only queries; `count_sql` is `None` unless the
    query requests a count.
    """

    table_sql = dialect.q(query.table)
    where = compile_where(query.predicates, dialect)

    count_sql = None
    if query.count:
        count_sql = f"SELECT COUNT(*) AS {dialect.q(COUNT_ALIAS)} FROM {table_sql}{where.sql}"

    if query.head:
        return CompiledQuery(None, None, count_sql, where.params)

    sql = f"SELECT {compile_columns(query.columns, dialect)} FROM {table_sql}{where.sql}"
    sql += compile_order_by(query.orders, dialect)
    sql, params = append_row_range(sql, where.params, query.row_range, dialect=dialect)
    return CompiledQuery(sql, params, count_sql, where.params)


def compile_columns(columns: str, dialect: DialectPort) -> str:
    """Compile a projection spec (`*` or `a,b,c`) into a column list."""

    names = [name.strip() for name in (columns or "*").split(",")]
    if names == ["*"]:
        return "*"
    for name in names:
        if _IDENTIFIER.fullmatch(name) is None:
            raise StoreError(f"Unsupported column spec {columns!r}")
    return ", ".join(dialect.q(name) for name in names)


def compile_where(predicates: Sequence[Predicate], dialect: DialectPort) -> CompiledFragment:
    """Compile predicates into a SQL `WHERE` fragment joined with `AND`.

    Returns an empty fragment when there are no predicates.
    """

    if not predicates:
        return CompiledFragment("", None)

    generator = _ParamNameGenerator()
    clauses: List[str] = []
    params: QueryParams = {} if dialect.paramstyle == "named" else []

    for item in predicates:
        clause, fragment_params = _compile_predicate(item, dialect, generator)
        clauses.append(clause)
        _merge_params(params, fragment_params)

    return CompiledFragment(f" WHERE {' AND '.join(clauses)}", params)


def compile_order_by(orders: Sequence[OrderClause], dialect: DialectPort) -> str:
    """Compile `ORDER BY` clause from ordering operations."""

    if not orders:
        return ""

    ordered_cols = ", ".join(
        f"{dialect.q(item.field)} {'ASC' if item.ascending else 'DESC'}" for item in orders
    )
    return f" ORDER BY {ordered_cols}"


def append_row_range(
    sql: str,
    params: QueryParams,
    row_range: Optional[RowRange],
    *,
    dialect: DialectPort,
) -> Tuple[str, QueryParams]:
    """Append `LIMIT`/`OFFSET` for an inclusive row window and merge params."""

    if row_range is None:
        return sql, params

    if dialect.paramstyle == "named":
        named_params = dict(params) if isinstance(params, dict) else {}
        named_params["__limit"] = row_range.limit
        named_params["__offset"] = row_range.start
        return sql + " LIMIT :__limit OFFSET :__offset", named_params

    positional_params = list(params) if isinstance(params, list) else []
    positional_params.extend([row_range.limit, row_range.start])
    return (
        sql + f" LIMIT {dialect.placeholder('limit')} OFFSET {dialect.placeholder('offset')}",
        positional_params,
    )


def _compile_predicate(
    predicate: Predicate,
    dialect: DialectPort,
    generator: _ParamNameGenerator,
) -> Tuple[str, QueryParams]:
    """Compile one predicate into SQL and parameters."""

    col_sql = dialect.q(predicate.field)
    operator = predicate.operator

    if operator is Operator.IS:
        operand = is_operand(predicate.value)
        if operand is None:
            return f"{col_sql} IS NULL", _empty_params(dialect)
        return f"{col_sql} IS {'TRUE' if operand else 'FALSE'}", _empty_params(dialect)

    items = predicate_items(predicate)
    if items is not None:
        if not items:
            return "1=0", _empty_params(dialect)
        keys = [generator.next(predicate.field) for _ in items]
        placeholders = [_placeholder(dialect, key) for key in keys]
        if operator is Operator.ARRAY_INTERSECTS:
            clause = dialect.array_overlap(col_sql, placeholders)
        else:
            clause = f"{col_sql} IN ({', '.join(placeholders)})"
        return clause, _bind(dialect, keys, items)

    if predicate.value is None:
        # Comparisons against NULL match nothing in SQL.
        return "1=0", _empty_params(dialect)

    key = generator.next(predicate.field)
    placeholder = _placeholder(dialect, key)
    if operator is Operator.ILIKE:
        clause = dialect.ilike(col_sql, placeholder)
    else:
        clause = f"{col_sql} {_COMPARISONS[operator]} {placeholder}"
    return clause, _bind(dialect, [key], [predicate.value])


def _placeholder(dialect: DialectPort, key: str) -> str:
    return f":{key}" if dialect.paramstyle == "named" else dialect.placeholder(key)


def _bind(dialect: DialectPort, keys: Sequence[str], values: Sequence[object]) -> QueryParams:
    if dialect.paramstyle == "named":
        return dict(zip(keys, values))
    return list(values)


def _empty_params(dialect: DialectPort) -> QueryParams:
    """Return empty parameters matching dialect param style."""

    return {} if dialect.paramstyle == "named" else []


def _merge_params(target: QueryParams, source: QueryParams) -> None:
    """Merge parameter collections in place."""

    if isinstance(target, dict) and isinstance(source, dict):
        target.update(source)
    elif isinstance(target, list) and isinstance(source, list):
        target.extend(source)
