"""Async connection wrapper used by `AsyncSqlStore`."""

from __future__ import annotations

import inspect
from typing import Any, Mapping

from ...core._async_utils import maybe_await
from ...core.types import MaybeRow, QueryParams, RowMapping, Rows
from .dialects import Dialect


class AsyncDatabase:
    """Async database wrapper that normalizes execute and row mapping behavior.

    Works with async drivers (aiosqlite, asyncpg-style DB-API shims) and with
    plain sync connections.
    """

    def __init__(self, conn: Any, dialect: Dialect):
        self._closed = False
        self.conn = conn
        self.dialect = dialect

    async def execute(self, sql: str, params: QueryParams = None) -> Any:
        """Execute SQL with optional parameters and return cursor."""

        if self._closed:
            raise RuntimeError("connection is closed")
        cur = await maybe_await(self.conn.cursor())
        try:
            if params is None:
                await maybe_await(cur.execute(sql))
            else:
                await maybe_await(cur.execute(sql, params))
        except BaseException:
            await self._close_cursor(cur)
            raise
        return cur

    def _row_to_mapping(self, cursor: Any, row: Any) -> RowMapping:
        if isinstance(row, Mapping):
            return dict(row)

        desc = getattr(cursor, "description", None)
        if isinstance(row, (tuple, list)) or desc:
            if not desc:
                raise TypeError(
                    "Cursor has no description; cannot map tuple rows to dict."
                )
            cols = [d[0] for d in desc]
            return dict(zip(cols, tuple(row), strict=True))

        raise TypeError(f"Unsupported row type: {type(row)}")

    async def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow:
        """Execute query and return one normalized row mapping."""

        cur = await self.execute(sql, params)
        try:
            row = await maybe_await(cur.fetchone())
            if row is None:
                return None
            return self._row_to_mapping(cur, row)
        finally:
            await self._close_cursor(cur)

    async def fetchall(self, sql: str, params: QueryParams = None) -> Rows:
        """Execute query and return all rows as normalized mappings."""

        cur = await self.execute(sql, params)
        try:
            rows = await maybe_await(cur.fetchall())
            return [self._row_to_mapping(cur, r) for r in rows]
        finally:
            await self._close_cursor(cur)

    async def aclose(self) -> None:
        """Close the underlying connection once."""

        if self._closed:
            return
        self._closed = True
        close = getattr(self.conn, "close", None)
        if callable(close):
            await maybe_await(close())

    def close(self) -> None:
        """Close a sync connection; async connections need `aclose()`."""

        if self._closed:
            return
        close = getattr(self.conn, "close", None)
        if callable(close) and inspect.iscoroutinefunction(getattr(type(self.conn), "close", None)):
            return
        self._closed = True
        if callable(close):
            close()

    @staticmethod
    async def _close_cursor(cur: Any) -> None:
        close = getattr(cur, "close", None)
        if callable(close):
            await maybe_await(close())

    async def __aenter__(self) -> AsyncDatabase:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()
