"""Async query execution service mirroring `QueryService`."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Awaitable, Optional

from .config import AggregateStrategy, QueryConfig
from .contracts import AsyncStoreClientPort
from .converter import QueryConverter
from .criteria import Criteria
from .errors import ExecutionError, ValidationError
from .pagination import PaginatedResult, build_paginated_result
from .service import (
    _execution_error,
    count_procedure_params,
    parse_count_result,
    parse_rows_result,
    resolve_window,
    rows_procedure_params,
)
from .types import MaybeRow, Rows

logger = logging.getLogger(__name__)


class AsyncQueryService:
    """Async counterpart of `QueryService` backed by an `AsyncStoreClientPort`."""

    def __init__(
        self,
        store: AsyncStoreClientPort,
        config: Optional[QueryConfig] = None,
        converter: Optional[QueryConverter] = None,
    ):
        self.store = store
        self.config = config or (converter.config if converter else QueryConfig())
        self.converter = converter or QueryConverter(self.config)

    async def execute(self, criteria: Criteria) -> PaginatedResult[Any]:
        """Run one criteria and return its page of rows."""

        limit, offset = resolve_window(criteria, self.config.default_limit)
        strategy = self.config.strategy_for(criteria.table)

        if isinstance(strategy, AggregateStrategy):
            logger.debug("Serving %s through procedures %s/%s", criteria.table,
                         strategy.rows_procedure, strategy.count_procedure)
            rows, total = await self._execute_aggregate(criteria, strategy, limit, offset)
            return build_paginated_result(rows, total, limit, offset)

        query = self.converter.convert(criteria).range(offset, offset + limit - 1)
        result = await self._store_call(f"query on {criteria.table!r}", self.store.execute(query))
        return build_paginated_result(result.rows, result.count, limit, offset)

    async def count(self, criteria: Criteria) -> int:
        """Return the number of rows matching the criteria, ignoring paging."""

        strategy = self.config.strategy_for(criteria.table)
        if isinstance(strategy, AggregateStrategy):
            result = await self._store_call(
                f"procedure {strategy.count_procedure!r}",
                self.store.call(strategy.count_procedure, count_procedure_params(criteria)),
            )
            return parse_count_result(result, strategy.count_procedure)

        query = replace(self.converter.convert(criteria), count=True, head=True)
        result = await self._store_call(f"count on {criteria.table!r}", self.store.execute(query))
        return int(result.count or 0)

    async def get_by_id(
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
        result = await self._store_call(f"lookup on {table!r}", self.store.execute(query))
        return result.rows[0] if result.rows else None

    async def _execute_aggregate(
        self,
        criteria: Criteria,
        strategy: AggregateStrategy,
        limit: int,
        offset: int,
    ) -> tuple[Rows, int]:
        rows_task = asyncio.ensure_future(
            self.store.call(strategy.rows_procedure, rows_procedure_params(criteria, limit, offset))
        )
        count_task = asyncio.ensure_future(
            self.store.call(strategy.count_procedure, count_procedure_params(criteria))
        )
        tasks = {rows_task: strategy.rows_procedure, count_task: strategy.count_procedure}

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        failed = [task for task in (rows_task, count_task) if task in done and task.exception()]
        if failed:
            for other in pending:
                other.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise _execution_error(f"procedure {tasks[failed[0]]!r}", failed[0].exception())

        rows = parse_rows_result(rows_task.result(), strategy.rows_procedure)
        total = parse_count_result(count_task.result(), strategy.count_procedure)
        return rows, total

    async def _store_call(self, description: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except (ExecutionError, ValidationError):
            raise
        except Exception as exc:
            raise _execution_error(description, exc) from exc
