"""Tests for the in-memory durable store."""

import pytest

from barkwatch.storage.memory_store import InMemoryStore


@pytest.mark.unit
class TestInMemoryStore:
    """Test cases for InMemoryStore."""

    @pytest.mark.asyncio
    async def test_trim_removes_oldest(self, store: InMemoryStore) -> None:
        for i in range(6):
            await store.append_bark_event({"timestamp": str(i)})

        removed = await store.trim_bark_events(4)

        assert removed == 2
        assert [r["timestamp"] for r in await store.list_bark_events()] == ["2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store: InMemoryStore) -> None:
        """Test callers cannot mutate stored records."""
        await store.append_session({"id": "1", "photos": ["a.jpg"]})

        listed = await store.list_sessions()
        listed[0]["photos"].append("b.jpg")

        assert (await store.list_sessions())[0]["photos"] == ["a.jpg"]

    @pytest.mark.asyncio
    async def test_settings(self, store: InMemoryStore) -> None:
        assert await store.read_settings() is None

        await store.write_settings({"sensitivity": 4})

        assert await store.read_settings() == {"sensitivity": 4}

    @pytest.mark.asyncio
    async def test_lifecycle_hooks_are_no_ops(self, store: InMemoryStore) -> None:
        await store.initialize()
        await store.close()
