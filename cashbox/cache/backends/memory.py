"""
Cashbox — Memory Store

In-process store with per-key TTL and a tag index.
Safe to share between threads; no operation suspends the event loop.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

from ..interface import MISSING, StoreInterface

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float | None = None


class MemoryStore(StoreInterface):
    """
    In-memory store.

    Features:
    - Per-key TTL, checked lazily on access
    - Tag index (tag -> ordered keys) with a reverse index (key -> tags)
    - Tag memberships are pruned when a key is removed or found expired
    - Thread-safe operations
    """

    name = "memory"
    supports_tagging = True

    def __init__(self, **options: Any):
        """
        Initialize memory store.

        Args:
            **options: Accepted for parity with the network stores and ignored
        """
        if options:
            logger.debug("Ignoring options for memory store: %s", sorted(options))

        # key -> entry
        self._data: dict[str, _Entry] = {}
        # tag -> keys (dict used as an ordered set)
        self._tags: dict[str, dict[str, None]] = {}
        # key -> tags, for pruning
        self._key_tags: dict[str, set[str]] = {}

        # Stats
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0
        self._expirations = 0

        # Guards all three maps
        self._lock = threading.RLock()

    # ------------ Helpers (call with the lock held) ------------

    @staticmethod
    def _expiry(ttl: int | None) -> float | None:
        if ttl is None:
            return None
        return time.time() + ttl

    @staticmethod
    def _is_expired(entry: _Entry) -> bool:
        return entry.expires_at is not None and entry.expires_at <= time.time()

    def _remove(self, key: str) -> bool:
        """Drop a key and its tag memberships."""
        existed = self._data.pop(key, None) is not None

        for tag in self._key_tags.pop(key, ()):
            keys = self._tags.get(tag)
            if keys is None:
                continue
            keys.pop(key, None)
            if not keys:
                del self._tags[tag]

        return existed

    def _live_entry(self, key: str) -> _Entry | None:
        """Return the entry for key, evicting it if expired."""
        entry = self._data.get(key)
        if entry is None:
            return None

        if self._is_expired(entry):
            self._remove(key)
            self._expirations += 1
            logger.debug("Evicted expired key from memory store: %s", key)
            return None

        return entry

    def _read(self, key: str) -> Any:
        entry = self._live_entry(key)
        if entry is None:
            self._misses += 1
            return MISSING
        self._hits += 1
        return entry.value

    def _write(self, key: str, value: Any, tags: list[str] | None, expires_at: float | None) -> None:
        # An expired entry's tags must not carry over to the new value
        self._live_entry(key)

        self._data[key] = _Entry(value, expires_at)
        self._sets += 1

        if tags:
            key_tags = self._key_tags.setdefault(key, set())
            for tag in tags:
                self._tags.setdefault(tag, {})[key] = None
                key_tags.add(tag)

    # ------------ Core Interface ------------

    async def get(self, key: str) -> Any:
        """Retrieve value from store."""
        with self._lock:
            return self._read(key)

    async def set(
        self,
        key: str,
        value: Any,
        tags: list[str] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Store value and tag memberships in one step."""
        with self._lock:
            self._write(key, value, tags, self._expiry(ttl))
        return True

    async def mget(self, keys: list[str]) -> list[Any]:
        """Retrieve multiple values, aligned to keys."""
        with self._lock:
            return [self._read(key) for key in keys]

    async def mset(
        self,
        values: dict[str, Any],
        tags: dict[str, list[str]] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Store multiple values with one expiry."""
        tags = tags or {}
        with self._lock:
            expires_at = self._expiry(ttl)
            for key, value in values.items():
                self._write(key, value, tags.get(key), expires_at)
        return True

    async def expire(self, key: str, ttl: int | None = None) -> bool:
        """Remove a key, or move its expiry."""
        with self._lock:
            entry = self._live_entry(key)
            if entry is None:
                return False

            if ttl is None:
                self._remove(key)
                self._deletes += 1
                return True

            entry.expires_at = self._expiry(ttl)
            return True

    async def get_keys(self, tags: list[str]) -> list[str]:
        """Return the distinct live keys carrying any of the tags."""
        with self._lock:
            candidates: dict[str, None] = {}
            for tag in tags:
                candidates.update(self._tags.get(tag, {}))

            return [key for key in candidates if self._live_entry(key) is not None]

    async def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

            return {
                "backend": self.name,
                "size": len(self._data),
                "tags": len(self._tags),
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(hit_rate, 2),
                "sets": self._sets,
                "deletes": self._deletes,
                "expirations": self._expirations,
            }

    async def close(self) -> None:
        """Close store. Data stays in-process until the store is dropped."""
        logger.debug("Memory store closed")
