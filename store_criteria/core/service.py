"""Query execution service: criteria in, uniform paginated envelope out."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping as MappingABC
from concurrent.futures import FIRST_EXCEPTION, Executor, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Any, Callable, Optional, TypeVar

from .config import AggregateStrategy, QueryConfig
from .contracts import StoreClientPort
from .converter import QueryConverter
from .criteria import Criteria
from .errors import ExecutionError, ValidationError
from .pagination import PaginatedResult, build_paginated_result
from .types import MaybeRow, Rows

logger = logging.getLogger(__name__)

R = TypeVar("R")


class QueryService:
    """Serves criteria against a `StoreClientPort`.

    Tables configured with an `AggregateStrategy` are served by two stored
    procedures issued concurrently; every other table by one direct query
    that also returns the exact count.
    """

    def __init__(
        self,
        store: StoreClientPort,
        config: Optional[QueryConfig] = None,
        converter: Optional[QueryConverter] = None,
        *,
        executor: Optional[Executor] = None,
    ):
        """Create the service.

        Args:
            store: Store binding implementing `StoreClientPort`.
            config: Shared configuration; defaults to `QueryConfig()`.
            converter: Converter to use; defaults to one built from `config`.
            executor: Executor for the concurrent procedure calls. A
                two-worker pool is created per call when omitted.
        """

        self.store = store
        self.config = config or (converter.config if converter else QueryConfig())
        self.converter = converter or QueryConverter(self.config)
        self._executor = executor

    def execute(self, criteria: Criteria) -> PaginatedResult[Any]:
        """Run one criteria and return its page of rows.

        Raises:
            ValidationError: If the criteria cannot be converted.
            ExecutionError: If any store call fails.
        """

        limit, offset = resolve_window(criteria, self.config.default_limit)
        strategy = self.config.strategy_for(criteria.table)

        if isinstance(strategy, AggregateStrategy):
            logger.debug("Serving %s through procedures %s/%s", criteria.table,
                         strategy.rows_procedure, strategy.count_procedure)
            rows, total = self._execute_aggregate(criteria, strategy, limit, offset)
            return build_paginated_result(rows, total, limit, offset)

        query = self.converter.convert(criteria).range(offset, offset + limit - 1)
        result = self._store_call(f"query on {criteria.table!r}", self.store.execute, query)
        return build_paginated_result(result.rows, result.count, limit, offset)

    def count(self, criteria: Criteria) -> int:
        """Return the number of rows matching the criteria, ignoring paging."""

        strategy = self.config.strategy_for(criteria.table)
        if isinstance(strategy, AggregateStrategy):
            result = self._store_call(
                f"procedure {strategy.count_procedure!r}",
                self.store.call,
                strategy.count_procedure,
                count_procedure_params(criteria),
            )
            return parse_count_result(result, strategy.count_procedure)

        query = replace(self.converter.convert(criteria), count=True, head=True)
        result = self._store_call(f"count on {criteria.table!r}", self.store.execute, query)
        return int(result.count or 0)

    def get_by_id(
        self,
        table: str,
        row_id: Any,
        *,
        columns: str = "*",
        id_field: str = "id",
        check_soft_delete: bool = True,
    ) -> MaybeRow:
        """Fetch one row by id; a missing row is `None`, not an error."""

        query = self.converter.convert_lookup(
            table, id_field, row_id, columns=columns, check_soft_delete=check_soft_delete
        )
        result = self._store_call(f"lookup on {table!r}", self.store.execute, query)
        return result.rows[0] if result.rows else None

    def _execute_aggregate(
        self,
        criteria: Criteria,
        strategy: AggregateStrategy,
        limit: int,
        offset: int,
    ) -> tuple[Rows, int]:
        executor = self._executor or ThreadPoolExecutor(max_workers=2)
        try:
            rows_future = executor.submit(
                self.store.call,
                strategy.rows_procedure,
                rows_procedure_params(criteria, limit, offset),
            )
            count_future = executor.submit(
                self.store.call,
                strategy.count_procedure,
                count_procedure_params(criteria),
            )
            done, pending = wait([rows_future, count_future], return_when=FIRST_EXCEPTION)
            for future, name in (
                (rows_future, strategy.rows_procedure),
                (count_future, strategy.count_procedure),
            ):
                if future in done and future.exception() is not None:
                    for other in pending:
                        other.cancel()
                    raise _execution_error(f"procedure {name!r}", future.exception())
        finally:
            if self._executor is None:
                executor.shutdown(wait=False, cancel_futures=True)

        rows = parse_rows_result(rows_future.result(), strategy.rows_procedure)
        total = parse_count_result(count_future.result(), strategy.count_procedure)
        return rows, total

    def _store_call(self, description: str, func: Callable[..., R], *args: Any) -> R:
        try:
            return func(*args)
        except (ExecutionError, ValidationError):
            raise
        except Exception as exc:
            raise _execution_error(description, exc) from exc


def resolve_window(criteria: Criteria, default_limit: int) -> tuple[int, int]:
    """Pick the effective `(limit, offset)` for a criteria.

    An absent, non-finite or non-positive limit becomes `default_limit`; an
    absent, non-finite or negative offset becomes 0.
    """

    limit = _finite_int(criteria.limit)
    offset = _finite_int(criteria.offset)
    if limit is None or limit <= 0:
        limit = default_limit
    if offset is None or offset < 0:
        offset = 0
    return limit, offset


def rows_procedure_params(criteria: Criteria, limit: int, offset: int) -> dict[str, Any]:
    """Parameters of the page-of-rows procedure."""

    order = criteria.order_by
    return {
        "p_filters": _filters_payload(criteria),
        "p_order_by": order.field if order else None,
        "p_order_direction": "ASC" if order is None or order.ascending else "DESC",
        "p_limit": limit,
        "p_offset": offset,
    }


def count_procedure_params(criteria: Criteria) -> dict[str, Any]:
    """Parameters of the total-count procedure."""

    return {"p_filters": _filters_payload(criteria)}


def parse_rows_result(result: Any, procedure: str) -> Rows:
    """Normalize a rows-procedure result into a list of rows."""

    if result is None:
        return []
    if isinstance(result, MappingABC) and "data" in result:
        return parse_rows_result(result["data"], procedure)
    if isinstance(result, (list, tuple)):
        return list(result)
    raise ExecutionError(
        f"Procedure {procedure!r} returned {type(result).__name__}, expected rows",
        detail=repr(result),
    )


def parse_count_result(result: Any, procedure: str) -> int:
    """Normalize a count-procedure result into an integer.

    Accepts a number, `None`, a `{total_rows|count: n}` mapping, or a
    one-row list holding one of those.
    """

    if result is None:
        return 0
    if isinstance(result, MappingABC):
        for key in ("total_rows", "count"):
            if key in result:
                return parse_count_result(result[key], procedure)
    elif isinstance(result, (list, tuple)):
        if not result:
            return 0
        if len(result) == 1:
            return parse_count_result(result[0], procedure)
    elif not isinstance(result, bool):
        number = _finite_int(result)
        if number is not None and number >= 0:
            return number
    raise ExecutionError(
        f"Procedure {procedure!r} returned an invalid count",
        detail=repr(result),
    )


def _filters_payload(criteria: Criteria) -> list[dict[str, Any]]:
    return [item.to_dict() for item in criteria.filters or ()]


def _finite_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def _execution_error(description: str, exc: BaseException | None) -> ExecutionError:
    detail = str(exc) if exc is not None else None
    logger.error("Store %s failed: %s", description, detail)
    error = ExecutionError(f"Store {description} failed: {detail}", detail=detail)
    error.__cause__ = exc
    return error
