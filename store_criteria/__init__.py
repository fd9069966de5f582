"""store_criteria: backend-agnostic criteria to store query translation."""

from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all
from .ports import (
    AsyncDatabase,
    AsyncInMemoryStore,
    AsyncSqlStore,
    Database,
    Dialect,
    InMemoryStore,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    SqlStore,
)

__all__ = list(_core_all) + [
    "AsyncDatabase",
    "AsyncInMemoryStore",
    "AsyncSqlStore",
    "Database",
    "Dialect",
    "InMemoryStore",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "SqlStore",
]
