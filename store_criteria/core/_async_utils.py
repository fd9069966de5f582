"""Internal async helpers shared by async store bindings."""

from __future__ import annotations

import inspect
from typing import Any, Callable


async def maybe_await(value: Any) -> Any:
    """Await awaitables and return non-awaitable values unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_maybe_async(func: Callable[..., Any], *args: Any) -> Any:
    """Call a sync or async callable and return its resolved result."""
    return await maybe_await(func(*args))
