"""In-memory store binding for testing and local development."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

from ...core._async_utils import call_maybe_async
from ...core.contracts import QueryResult
from ...core.errors import StoreError
from ...core.operators import Operator
from ...core.query_spec import OrderClause, Predicate, StoreQuery
from ...core.types import ProcedureParams, RowMapping
from ..literals import is_operand, predicate_items

Procedure = Callable[[ProcedureParams], Any]

_MISSING = object()


class InMemoryStore:
    """Evaluates `StoreQuery` values over lists of dict rows.

    Predicate values arrive in store text form and are coerced to the type of
    the row value they are compared with.
    """

    def __init__(
        self,
        tables: Optional[Mapping[str, Iterable[RowMapping]]] = None,
        *,
        procedures: Optional[Mapping[str, Procedure]] = None,
    ) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {}
        for name, rows in (tables or {}).items():
            self.load(name, rows)
        self.procedures: dict[str, Procedure] = dict(procedures or {})

    def load(self, table: str, rows: Iterable[RowMapping]) -> None:
        """Replace the contents of one table."""

        self._tables[table] = [dict(row) for row in rows]

    def register_procedure(self, name: str, procedure: Procedure) -> None:
        self.procedures[name] = procedure

    def execute(self, query: StoreQuery) -> QueryResult:
        rows = [row for row in self._table(query.table) if self._matches(row, query.predicates)]
        count = len(rows) if query.count else None
        if query.head:
            return QueryResult(rows=[], count=count)

        rows = self._sorted(rows, query.orders)
        window = query.row_range
        if window is not None:
            rows = rows[window.start : window.end + 1]
        return QueryResult(rows=[self._project(row, query.columns) for row in rows], count=count)

    def call(self, procedure: str, params: ProcedureParams) -> Any:
        if procedure not in self.procedures:
            raise StoreError(f"Unknown procedure {procedure!r}")
        return self.procedures[procedure](params)

    def _table(self, name: str) -> list[dict[str, Any]]:
        if name not in self._tables:
            raise StoreError(f"Table does not exist: {name}")
        return self._tables[name]

    def _matches(self, row: Mapping[str, Any], predicates: Sequence[Predicate]) -> bool:
        return all(self._match_predicate(row, predicate) for predicate in predicates)

    @staticmethod
    def _match_predicate(row: Mapping[str, Any], predicate: Predicate) -> bool:
        actual = row.get(predicate.field, _MISSING)
        if actual is _MISSING:
            raise StoreError(f"Column does not exist: {predicate.field}")
        operator = predicate.operator

        if operator is Operator.IS:
            operand = is_operand(predicate.value)
            return actual is None if operand is None else actual is operand

        if actual is None:
            return False

        items = predicate_items(predicate)
        if operator is Operator.ARRAY_INTERSECTS:
            if not isinstance(actual, (list, tuple, set, frozenset)):
                raise StoreError(f"Column {predicate.field!r} is not an array")
            return bool({str(item) for item in actual} & set(items or ()))
        if operator is Operator.IN:
            return any(actual == _coerce(actual, item) for item in items or ())

        if predicate.value is None:
            return False
        if operator in (Operator.LIKE, Operator.ILIKE):
            return _like(str(actual), predicate.value, operator is Operator.ILIKE)

        expected = _coerce(actual, predicate.value)
        try:
            if operator is Operator.EQUAL:
                return actual == expected
            if operator is Operator.NOT_EQUAL:
                return actual != expected
            if operator is Operator.GREATER:
                return actual > expected
            if operator is Operator.GREATER_EQUAL:
                return actual >= expected
            if operator is Operator.LESS:
                return actual < expected
            if operator is Operator.LESS_EQUAL:
                return actual <= expected
        except TypeError as exc:
            raise StoreError(f"Cannot compare column {predicate.field!r}: {exc}") from exc
        raise StoreError(f"Unsupported operator: {operator.value}")

    @staticmethod
    def _sorted(rows: list[dict[str, Any]], orders: Sequence[OrderClause]) -> list[dict[str, Any]]:
        # Stable sorts applied from the last key to the first; NULLs sort last
        # ascending and first descending.
        ordered = list(rows)
        for clause in reversed(orders):
            try:
                ordered.sort(
                    key=lambda row: (row.get(clause.field) is None, row.get(clause.field)),
                    reverse=not clause.ascending,
                )
            except TypeError as exc:
                raise StoreError(f"Cannot order by {clause.field!r}: {exc}") from exc
        return ordered

    @staticmethod
    def _project(row: Mapping[str, Any], columns: str) -> dict[str, Any]:
        names = [name.strip() for name in (columns or "*").split(",")]
        if names == ["*"]:
            return dict(row)
        missing = [name for name in names if name not in row]
        if missing:
            raise StoreError(f"Column does not exist: {', '.join(missing)}")
        return {name: row[name] for name in names}


class AsyncInMemoryStore(InMemoryStore):
    """Async facade over `InMemoryStore`; procedures may be coroutines."""

    async def execute(self, query: StoreQuery) -> QueryResult:  # type: ignore[override]
        return InMemoryStore.execute(self, query)

    async def call(self, procedure: str, params: ProcedureParams) -> Any:  # type: ignore[override]
        if procedure not in self.procedures:
            raise StoreError(f"Unknown procedure {procedure!r}")
        return await call_maybe_async(self.procedures[procedure], params)


def _coerce(actual: Any, text: str) -> Any:
    """Convert store text into the type of the row value it is compared with."""

    try:
        if isinstance(actual, bool):
            lowered = text.strip().lower()
            if lowered not in ("true", "false"):
                raise ValueError(f"invalid boolean {text!r}")
            return lowered == "true"
        if isinstance(actual, int):
            number = float(text)
            return int(number) if number.is_integer() else number
        if isinstance(actual, float):
            return float(text)
        if isinstance(actual, datetime):
            return datetime.fromisoformat(text.replace("Z", "+00:00"))
        if isinstance(actual, date):
            return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise StoreError(f"Invalid input syntax {text!r}: {exc}") from exc
    return text


def _like(value: str, pattern: str, insensitive: bool) -> bool:
    regex = "".join(
        ".*" if ch == "%" else "." if ch == "_" else re.escape(ch) for ch in pattern
    )
    flags = re.DOTALL | (re.IGNORECASE if insensitive else 0)
    return re.fullmatch(regex, value, flags) is not None
