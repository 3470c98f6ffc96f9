"""In-memory durable store for tests and ephemeral runs."""

import copy
from typing import Any

from barkwatch.monitoring.interfaces import DurableStore


class InMemoryStore(DurableStore):
    """Plain ordered containers; nothing survives the process."""

    def __init__(self) -> None:
        self._bark_events: list[dict[str, Any]] = []
        self._sessions: list[dict[str, Any]] = []
        self._settings: dict[str, Any] | None = None

    async def append_bark_event(self, record: dict[str, Any]) -> None:
        self._bark_events.append(dict(record))

    async def trim_bark_events(self, keep: int) -> int:
        excess = len(self._bark_events) - keep
        if excess <= 0:
            return 0
        del self._bark_events[:excess]
        return excess

    async def list_bark_events(self) -> list[dict[str, Any]]:
        return [dict(record) for record in self._bark_events]

    async def append_session(self, record: dict[str, Any]) -> None:
        self._sessions.append(copy.deepcopy(record))

    async def list_sessions(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._sessions)

    async def read_settings(self) -> dict[str, Any] | None:
        return dict(self._settings) if self._settings is not None else None

    async def write_settings(self, record: dict[str, Any]) -> None:
        self._settings = dict(record)

    async def clear(self) -> None:
        self._bark_events.clear()
        self._sessions.clear()
        self._settings = None
