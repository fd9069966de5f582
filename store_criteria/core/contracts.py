"""Core port contracts implemented by store bindings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from .query_spec import StoreQuery
from .types import ProcedureParams, Rows


@dataclass(frozen=True)
class QueryResult:
    """Rows of one executed query plus the exact count when it was requested."""

    rows: Rows = field(default_factory=list)
    count: Optional[int] = None


class StoreClientPort(Protocol):
    """Store behavior required by `QueryService`."""

    def execute(self, query: StoreQuery) -> QueryResult: ...

    def call(self, procedure: str, params: ProcedureParams) -> Any: ...


class AsyncStoreClientPort(Protocol):
    """Store behavior required by `AsyncQueryService`."""

    async def execute(self, query: StoreQuery) -> QueryResult: ...

    async def call(self, procedure: str, params: ProcedureParams) -> Any: ...
