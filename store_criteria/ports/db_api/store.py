"""Store bindings that serve `StoreQuery` values from a DB-API connection."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping as MappingABC
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from ...core._async_utils import call_maybe_async
from ...core.contracts import QueryResult
from ...core.errors import StoreError
from ...core.query_spec import StoreQuery
from ...core.types import ProcedureParams, QueryParams, Rows
from .contracts import AsyncDatabasePort, DatabasePort, DialectPort
from .sql_compiler import COUNT_ALIAS, CompiledQuery, compile_query

logger = logging.getLogger(__name__)

Procedure = Callable[[DatabasePort, ProcedureParams], Any]
AsyncProcedure = Callable[[AsyncDatabasePort, ProcedureParams], Union[Any, Awaitable[Any]]]


class SqlStore:
    """`StoreClientPort` implementation compiling queries to SQL.

    Procedures are resolved from the `procedures` registry first; dialects
    with server-side functions fall back to `SELECT * FROM name(...)`.
    """

    def __init__(self, db: DatabasePort, *, procedures: Optional[Mapping[str, Procedure]] = None):
        self.db = db
        self.d = db.dialect
        self.procedures = dict(procedures or {})

    def execute(self, query: StoreQuery) -> QueryResult:
        """Run the row statement and, when requested, the count statement."""

        compiled = _compile(query, self.d)
        try:
            rows: Rows = []
            if compiled.sql is not None:
                logger.debug("SQL %s params=%r", compiled.sql, compiled.params)
                rows = self.db.fetchall(compiled.sql + ";", compiled.params)
            count = None
            if compiled.count_sql is not None:
                row = self.db.fetchone(compiled.count_sql + ";", compiled.count_params)
                count = _count_from_row(row)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Query on {query.table!r} failed: {exc}") from exc
        return QueryResult(rows=rows, count=count)

    def call(self, procedure: str, params: ProcedureParams) -> Any:
        """Invoke a registered procedure or a server-side function."""

        try:
            if procedure in self.procedures:
                return self.procedures[procedure](self.db, params)
            sql, bound = _function_sql(self.d, procedure, params)
            return _unwrap_scalar(procedure, self.db.fetchall(sql + ";", bound))
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Procedure {procedure!r} failed: {exc}") from exc


class AsyncSqlStore:
    """`AsyncStoreClientPort` implementation compiling queries to SQL."""

    def __init__(
        self,
        db: AsyncDatabasePort,
        *,
        procedures: Optional[Mapping[str, AsyncProcedure]] = None,
    ):
        self.db = db
        self.d = db.dialect
        self.procedures = dict(procedures or {})

    async def execute(self, query: StoreQuery) -> QueryResult:
        """Run the row statement and, when requested, the count statement."""

        compiled = _compile(query, self.d)
        try:
            rows: Rows = []
            if compiled.sql is not None:
                logger.debug("SQL %s params=%r", compiled.sql, compiled.params)
                rows = await self.db.fetchall(compiled.sql + ";", compiled.params)
            count = None
            if compiled.count_sql is not None:
                row = await self.db.fetchone(compiled.count_sql + ";", compiled.count_params)
                count = _count_from_row(row)
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Query on {query.table!r} failed: {exc}") from exc
        return QueryResult(rows=rows, count=count)

    async def call(self, procedure: str, params: ProcedureParams) -> Any:
        """Invoke a registered procedure or a server-side function."""

        try:
            if procedure in self.procedures:
                return await call_maybe_async(self.procedures[procedure], self.db, params)
            sql, bound = _function_sql(self.d, procedure, params)
            return _unwrap_scalar(procedure, await self.db.fetchall(sql + ";", bound))
        except StoreError:
            raise
        except Exception as exc:
            raise StoreError(f"Procedure {procedure!r} failed: {exc}") from exc


def _compile(query: StoreQuery, dialect: DialectPort) -> CompiledQuery:
    try:
        return compile_query(query, dialect)
    except StoreError:
        raise
    except (KeyError, ValueError) as exc:
        raise StoreError(f"Cannot compile query on {query.table!r}: {exc}") from exc


def _function_sql(dialect: DialectPort, procedure: str, params: ProcedureParams) -> tuple[str, QueryParams]:
    if not dialect.supports_functions:
        raise StoreError(f"Unknown procedure {procedure!r}")
    names = list(params)
    placeholders = [
        (name, f":{name}" if dialect.paramstyle == "named" else dialect.placeholder(name))
        for name in names
    ]
    values = [_function_arg(params[name]) for name in names]
    bound: QueryParams = dict(zip(names, values)) if dialect.paramstyle == "named" else values
    return dialect.function_call(procedure, placeholders), bound


def _function_arg(value: Any) -> Any:
    if isinstance(value, (list, tuple, MappingABC)):
        return json.dumps(value)
    return value


def _unwrap_scalar(procedure: str, rows: Rows) -> Any:
    # Scalar functions yield one row with one column named after the function.
    if len(rows) == 1 and list(rows[0]) == [procedure]:
        return rows[0][procedure]
    return rows


def _count_from_row(row: Any) -> int:
    if row is None:
        return 0
    return int(row.get(COUNT_ALIAS) or 0)
