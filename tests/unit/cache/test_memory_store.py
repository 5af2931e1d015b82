"""
Cashbox — Memory Store Tests

Tests TTL handling, tag indexing with pruning, thread safety and all
interface methods of the in-process store.
"""

import asyncio
import threading
import time
from typing import Any
from unittest.mock import patch

import pytest

from cashbox.cache.backends.memory import MemoryStore
from cashbox.cache.interface import MISSING


class TestMemoryStore:
    """Test suite for MemoryStore."""

    @pytest.fixture
    def store(self) -> MemoryStore:
        """Create a fresh memory store for each test."""
        return MemoryStore()

    async def test_initialization(self, store: MemoryStore) -> None:
        """Test a new store is empty and supports tagging."""
        assert store.name == "memory"
        assert store.supports_tagging is True

        stats = await store.get_stats()
        assert stats["hits"] == 0
        assert stats["misses"] == 0
        assert stats["size"] == 0

    async def test_ignores_network_options(self) -> None:
        """Test backend options meant for network stores are accepted."""
        store = MemoryStore(host="localhost", port=6379)
        assert await store.set("key1", "value1") is True

    async def test_set_and_get(self, store: MemoryStore) -> None:
        """Test basic set and get operations."""
        assert await store.set("key1", "value1") is True
        assert await store.get("key1") == "value1"

        stats = await store.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 0
        assert stats["sets"] == 1

    async def test_get_nonexistent_key(self, store: MemoryStore) -> None:
        """Test a miss returns MISSING, not None."""
        assert await store.get("nonexistent") is MISSING

        stats = await store.get_stats()
        assert stats["misses"] == 1

    async def test_set_with_various_types(self, store: MemoryStore, sample_cache_data: dict[str, Any]) -> None:
        """Test storing falsy and nested values."""
        for key, value in sample_cache_data.items():
            await store.set(key, value)

        for key, expected_value in sample_cache_data.items():
            actual_value = await store.get(key)
            assert actual_value is not MISSING
            assert actual_value == expected_value

    async def test_overwrite_existing_key(self, store: MemoryStore) -> None:
        """Test a second set replaces the value."""
        await store.set("key1", "value1")
        await store.set("key1", "value2")

        assert await store.get("key1") == "value2"
        assert (await store.get_stats())["size"] == 1

    async def test_ttl_expiration(self, store: MemoryStore) -> None:
        """Test that entries expire after TTL."""
        await store.set("key1", "value1", ttl=1)
        assert await store.get("key1") == "value1"

        await asyncio.sleep(1.1)

        assert await store.get("key1") is MISSING

    async def test_ttl_none_never_expires(self, store: MemoryStore) -> None:
        """Test an entry without TTL survives far into the future."""
        await store.set("key1", "value1")

        with patch("cashbox.cache.backends.memory.time.time", return_value=time.time() + 10 * 365 * 86400):
            assert await store.get("key1") == "value1"

    async def test_non_positive_ttl_expires_immediately(self, store: MemoryStore) -> None:
        """Test ttl <= 0 means the value is never readable."""
        await store.set("zero", "value", ttl=0)
        await store.set("negative", "value", ttl=-5)

        assert await store.get("zero") is MISSING
        assert await store.get("negative") is MISSING

    async def test_mget_preserves_order(self, store: MemoryStore) -> None:
        """Test mget output follows the requested key order."""
        await store.set("key1", "value1")
        await store.set("key2", "value2")

        assert await store.mget(["key2", "nonexistent", "key1"]) == ["value2", MISSING, "value1"]

    async def test_mset_with_ttl(self, store: MemoryStore) -> None:
        """Test mset applies one TTL to every key."""
        assert await store.mset({"key1": "value1", "key2": "value2"}, ttl=1) is True
        assert await store.mget(["key1", "key2"]) == ["value1", "value2"]

        await asyncio.sleep(1.1)

        assert await store.mget(["key1", "key2"]) == [MISSING, MISSING]

    async def test_expire_without_ttl_removes_key(self, store: MemoryStore) -> None:
        """Test expire() with no ttl deletes."""
        await store.set("key1", "value1")

        assert await store.expire("key1") is True
        assert await store.get("key1") is MISSING
        assert await store.expire("key1") is False

    async def test_expire_nonexistent_with_ttl(self, store: MemoryStore) -> None:
        """Test changing the TTL of a missing key reports False."""
        assert await store.expire("nonexistent", 10) is False
        assert await store.get("nonexistent") is MISSING

    async def test_expire_changes_ttl_only(self, store: MemoryStore) -> None:
        """Test expire() with ttl keeps value and tags."""
        await store.set("key1", "value1", tags=["t"], ttl=10)

        assert await store.expire("key1", 1) is True
        assert await store.get("key1") == "value1"
        assert await store.get_keys(["t"]) == ["key1"]

        await asyncio.sleep(1.1)

        assert await store.get("key1") is MISSING

    async def test_expire_does_not_revive_expired_key(self, store: MemoryStore) -> None:
        """Test expire() on an expired key does not revive it."""
        await store.set("key1", "value1", ttl=0)

        assert await store.expire("key1", 100) is False
        assert await store.get("key1") is MISSING

    async def test_expire_removal_of_expired_key_reports_absent(self, store: MemoryStore) -> None:
        """Test removing a key that expired but was never read returns False."""
        with patch("cashbox.cache.backends.memory.time.time", return_value=1000.0):
            await store.set("key1", "value1", tags=["t"], ttl=1)

        with patch("cashbox.cache.backends.memory.time.time", return_value=1005.0):
            assert await store.expire("key1") is False

        stats = await store.get_stats()
        assert stats["deletes"] == 0
        assert stats["expirations"] == 1
        assert await store.get_keys(["t"]) == []

    async def test_tags_union(self, store: MemoryStore) -> None:
        """Test get_keys returns the de-duplicated union."""
        await store.set("k1", "v1", tags=["T"])
        await store.set("k2", "v2", tags=["T", "U"])

        assert set(await store.get_keys(["T"])) == {"k1", "k2"}
        assert await store.get_keys(["U"]) == ["k2"]

        keys = await store.get_keys(["T", "U"])
        assert sorted(keys) == ["k1", "k2"]
        assert len(keys) == 2

    async def test_tags_are_additive(self, store: MemoryStore) -> None:
        """Test re-setting with new tags keeps the old ones."""
        await store.set("k1", "v1", tags=["A"])
        await store.set("k1", "v2", tags=["B"])
        await store.set("k1", "v3")

        assert await store.get_keys(["A"]) == ["k1"]
        assert await store.get_keys(["B"]) == ["k1"]

    async def test_mset_tags(self, store: MemoryStore) -> None:
        """Test mset tags only the keys named in the tag map."""
        await store.mset({"k1": "v1", "k2": "v2"}, tags={"k1": ["T"]})

        assert await store.get_keys(["T"]) == ["k1"]

    async def test_tags_pruned_on_removal(self, store: MemoryStore) -> None:
        """Test removing a key drops it from every tag."""
        await store.set("k1", "v1", tags=["T", "U"])
        await store.set("k2", "v2", tags=["T"])

        await store.expire("k1")

        assert await store.get_keys(["T", "U"]) == ["k2"]
        assert (await store.get_stats())["tags"] == 1

    async def test_tags_pruned_on_expiry(self, store: MemoryStore) -> None:
        """Test expired keys never come back from get_keys."""
        await store.set("k1", "v1", tags=["T"], ttl=0)
        await store.set("k2", "v2", tags=["T"])

        assert await store.get_keys(["T"]) == ["k2"]

    async def test_expired_tags_do_not_carry_over(self, store: MemoryStore) -> None:
        """Test a key re-set after expiry starts with fresh tags."""
        await store.set("k1", "v1", tags=["old"], ttl=0)
        await store.set("k1", "v2", tags=["new"])

        assert await store.get_keys(["old"]) == []
        assert await store.get_keys(["new"]) == ["k1"]

    async def test_get_keys_unknown_tag(self, store: MemoryStore) -> None:
        """Test an unknown tag yields no keys."""
        assert await store.get_keys(["nothing"]) == []

    async def test_thread_safety(self, store: MemoryStore) -> None:
        """Test concurrent writers from several threads."""

        def writer(start: int) -> None:
            loop = asyncio.new_event_loop()
            try:
                for i in range(start, start + 50):
                    loop.run_until_complete(store.set(f"key{i}", i, tags=["shared"]))
            finally:
                loop.close()

        threads = [threading.Thread(target=writer, args=(n * 50,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert (await store.get_stats())["size"] == 200
        assert len(await store.get_keys(["shared"])) == 200

    async def test_close(self, store: MemoryStore) -> None:
        """Test close keeps the store usable."""
        await store.set("key1", "value1")
        await store.close()
        assert await store.get("key1") == "value1"
