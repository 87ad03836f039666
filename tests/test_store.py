"""
Tests for the in-memory and database-backed trigger stores.
"""

import pytest

from pieces.store import DatabaseStore, InMemoryStore


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_missing_key_is_none(self):
        assert await InMemoryStore().get("nope") is None

    @pytest.mark.asyncio
    async def test_put_none_clears(self):
        store = InMemoryStore({"k": [1]})
        await store.put("k", None)
        assert await store.get("k") is None
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_values_are_isolated_from_callers(self):
        store = InMemoryStore()
        value = [{"id": "1"}]
        await store.put("k", value)
        value.append({"id": "2"})
        fetched = await store.get("k")
        fetched.append({"id": "3"})
        assert await store.get("k") == [{"id": "1"}]


class TestDatabaseStore:
    @pytest.mark.asyncio
    async def test_put_get_overwrite(self, session_factory):
        store = DatabaseStore("inst-1", session_factory)
        assert await store.get("snapshot") is None

        await store.put("snapshot", [{"id": "1", "fields": {"Name": "A"}}])
        assert await store.get("snapshot") == [{"id": "1", "fields": {"Name": "A"}}]

        await store.put("snapshot", [])
        assert await store.get("snapshot") == []

    @pytest.mark.asyncio
    async def test_put_none_deletes_entry(self, session_factory):
        store = DatabaseStore("inst-1", session_factory)
        await store.put("webhook", {"id": "wh-1", "listId": "L"})
        await store.put("webhook", None)
        assert await store.get("webhook") is None
        assert await store.clear_all() == 0

    @pytest.mark.asyncio
    async def test_instances_are_isolated(self, session_factory):
        a = DatabaseStore("inst-a", session_factory)
        b = DatabaseStore("inst-b", session_factory)
        await a.put("key", {"owner": "a"})
        await b.put("key", {"owner": "b"})

        assert await a.get("key") == {"owner": "a"}
        assert await b.get("key") == {"owner": "b"}

        assert await a.clear_all() == 1
        assert await a.get("key") is None
        assert await b.get("key") == {"owner": "b"}
