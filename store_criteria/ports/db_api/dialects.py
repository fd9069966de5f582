"""Concrete SQL dialect implementations for DB-API store bindings."""

from __future__ import annotations

from typing import Sequence

from ...core.errors import StoreError


class Dialect:
    """Base dialect that defines quoting, placeholders and operator SQL."""

    name: str = "generic"
    paramstyle: str = "named"
    quote_char: str = '"'
    supports_functions: bool = False

    def q(self, ident: str) -> str:
        """Quote SQL identifier; dotted names are quoted per part."""

        quote = self.quote_char
        return ".".join(
            f"{quote}{part.replace(quote, quote * 2)}{quote}" for part in ident.split(".")
        )

    def placeholder(self, key: str) -> str:
        """Return parameter placeholder for current param style."""

        if self.paramstyle == "named":
            return f":{key}"
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "format":
            return "%s"
        raise ValueError(f"Unsupported paramstyle: {self.paramstyle}")

    def ilike(self, col_sql: str, placeholder: str) -> str:
        """Case-insensitive pattern match."""

        return f"LOWER({col_sql}) LIKE LOWER({placeholder})"

    def array_overlap(self, col_sql: str, placeholders: Sequence[str]) -> str:
        """Array column shares at least one element with the given items."""

        raise StoreError(f"Dialect {self.name!r} does not support array overlap")

    def function_call(self, procedure: str, placeholders: Sequence[tuple[str, str]]) -> str:
        """SQL selecting from a server-side function with named arguments."""

        raise StoreError(f"Dialect {self.name!r} does not support stored functions")


class SQLiteDialect(Dialect):
    """SQLite dialect (`:name` parameters, array columns stored as JSON text)."""

    name = "sqlite"
    paramstyle = "named"
    quote_char = '"'

    def array_overlap(self, col_sql: str, placeholders: Sequence[str]) -> str:
        # Items are bound as text; JSON numbers come back as INTEGER/REAL.
        return (
            f"EXISTS (SELECT 1 FROM json_each({col_sql}) "
            f"WHERE CAST(json_each.value AS TEXT) IN ({', '.join(placeholders)}))"
        )


class PostgresDialect(Dialect):
    """PostgreSQL dialect (`%s` positional parameters, native arrays)."""

    name = "postgres"
    paramstyle = "format"
    quote_char = '"'
    supports_functions = True

    def ilike(self, col_sql: str, placeholder: str) -> str:
        return f"{col_sql} ILIKE {placeholder}"

    def array_overlap(self, col_sql: str, placeholders: Sequence[str]) -> str:
        return f"{col_sql} && ARRAY[{', '.join(placeholders)}]"

    def function_call(self, procedure: str, placeholders: Sequence[tuple[str, str]]) -> str:
        args = ", ".join(f"{name} => {ph}" for name, ph in placeholders)
        return f"SELECT * FROM {self.q(procedure)}({args})"


class MySQLDialect(Dialect):
    """MySQL dialect (`%s` positional parameters, array columns as JSON)."""

    name = "mysql"
    paramstyle = "format"
    quote_char = "`"

    def array_overlap(self, col_sql: str, placeholders: Sequence[str]) -> str:
        return f"JSON_OVERLAPS({col_sql}, JSON_ARRAY({', '.join(placeholders)}))"
