"""Public core API for criteria validation, conversion, and execution."""

from .config import (
    DEFAULT_LIMIT,
    AggregateStrategy,
    DirectStrategy,
    ExecutionStrategy,
    QueryConfig,
    load_config,
)
from .contracts import AsyncStoreClientPort, QueryResult, StoreClientPort
from .converter import QueryConverter, format_set_literal, format_value
from .criteria import (
    Criteria,
    Filter,
    ImplicitFilter,
    Order,
    Pagination,
    add_filter,
    parse_filters,
    parse_order,
)
from .errors import ExecutionError, StoreError, ValidationError
from .operators import Direction, Operator, normalize_direction, normalize_operator
from .pagination import PaginatedResult, PaginationMeta, build_paginated_result, paginate
from .query_spec import OrderClause, Predicate, RowRange, StoreQuery
from .service import QueryService
from .service_async import AsyncQueryService

__all__ = [
    "DEFAULT_LIMIT",
    "AggregateStrategy",
    "AsyncQueryService",
    "AsyncStoreClientPort",
    "Criteria",
    "Direction",
    "DirectStrategy",
    "ExecutionError",
    "ExecutionStrategy",
    "Filter",
    "ImplicitFilter",
    "Operator",
    "Order",
    "OrderClause",
    "PaginatedResult",
    "Pagination",
    "PaginationMeta",
    "Predicate",
    "QueryConfig",
    "QueryConverter",
    "QueryResult",
    "QueryService",
    "RowRange",
    "StoreClientPort",
    "StoreError",
    "StoreQuery",
    "ValidationError",
    "add_filter",
    "build_paginated_result",
    "format_set_literal",
    "format_value",
    "load_config",
    "normalize_direction",
    "normalize_operator",
    "paginate",
    "parse_filters",
    "parse_order",
]
