"""Error types raised by criteria validation and query execution."""

from __future__ import annotations

from typing import Any, Optional


class ValidationError(ValueError):
    """Raised when raw criteria input is structurally invalid.

    Attributes:
        field: Name of the offending input (`filters`, `limit`, `orderDirection`...).
        value: The rejected raw value.
    """

    def __init__(self, message: str, *, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


class StoreError(Exception):
    """Raised by store bindings when the underlying store rejects a call."""


class ExecutionError(RuntimeError):
    """Raised when the store fails while serving one criteria evaluation.

    The original store error is chained as `__cause__` and its message kept
    in `detail`.
    """

    def __init__(self, message: str, *, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail
