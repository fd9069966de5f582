"""DB-API store bindings and dialect exports."""

from .async_database import AsyncDatabase
from .database import Database
from .dialects import Dialect, MySQLDialect, PostgresDialect, SQLiteDialect
from .sql_compiler import CompiledQuery, compile_query
from .store import AsyncSqlStore, SqlStore

__all__ = [
    "AsyncDatabase",
    "AsyncSqlStore",
    "CompiledQuery",
    "Database",
    "Dialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "SqlStore",
    "compile_query",
]
