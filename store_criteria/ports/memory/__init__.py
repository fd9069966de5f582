"""In-memory store binding exports."""

from .in_memory import AsyncInMemoryStore, InMemoryStore

__all__ = ["AsyncInMemoryStore", "InMemoryStore"]
