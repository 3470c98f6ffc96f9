"""Durable stores backing the bark monitoring event log."""

from .database import SQLiteStore
from .memory_store import InMemoryStore

__all__ = [
    "SQLiteStore",
    "InMemoryStore",
]
