"""Public port exports for concrete store bindings."""

from .db_api import (
    AsyncDatabase,
    AsyncSqlStore,
    Database,
    Dialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    SqlStore,
)
from .memory import AsyncInMemoryStore, InMemoryStore

__all__ = [
    "Database",
    "AsyncDatabase",
    "Dialect",
    "SQLiteDialect",
    "PostgresDialect",
    "MySQLDialect",
    "SqlStore",
    "AsyncSqlStore",
    "InMemoryStore",
    "AsyncInMemoryStore",
]
