"""Port contracts between the SQL store bindings and DB-API adapters."""

from __future__ import annotations

from typing import Any, List, Protocol, Sequence

from ...core.types import MaybeRow, QueryParams, RowMapping


class DialectPort(Protocol):
    """Dialect behavior required by SQL compilation."""

    name: str
    paramstyle: str
    supports_functions: bool

    def q(self, ident: str) -> str: ...

    def placeholder(self, key: str) -> str: ...

    def ilike(self, col_sql: str, placeholder: str) -> str: ...

    def array_overlap(self, col_sql: str, placeholders: Sequence[str]) -> str: ...

    def function_call(self, procedure: str, placeholders: Sequence[tuple[str, str]]) -> str: ...


class DatabasePort(Protocol):
    """Database adapter behavior required by `SqlStore`."""

    dialect: DialectPort

    def execute(self, sql: str, params: QueryParams = None) -> Any: ...

    def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow: ...

    def fetchall(self, sql: str, params: QueryParams = None) -> List[RowMapping]: ...


class AsyncDatabasePort(Protocol):
    """Async database adapter behavior required by `AsyncSqlStore`."""

    dialect: DialectPort

    async def execute(self, sql: str, params: QueryParams = None) -> Any: ...

    async def fetchone(self, sql: str, params: QueryParams = None) -> MaybeRow: ...

    async def fetchall(self, sql: str, params: QueryParams = None) -> List[RowMapping]: ...
