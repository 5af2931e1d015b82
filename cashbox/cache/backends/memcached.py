"""
Cashbox — Memcached Store

Memcached store backed by pymemcache. pymemcache is a blocking client, so
every command runs in a worker thread via asyncio.to_thread against a pooled
(thread-safe) client.

Memcached has no secondary index: this store does not support tagging, and
mset is N independent writes issued in parallel.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from ...errors import CacheConnectionError, CacheOperationError, SerializationError, TaggingNotSupportedError
from ..interface import MISSING, StoreInterface

logger = logging.getLogger(__name__)

try:
    from pymemcache.client.base import PooledClient
    from pymemcache.client.hash import HashClient
    from pymemcache.exceptions import MemcacheError, MemcacheUnexpectedCloseError
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "pymemcache is required for the memcached store but not installed. "
        "Install with: pip install 'pymemcache>=4.0.0'"
    ) from e

# Memcached reads expirations above 30 days as absolute Unix timestamps
MAX_RELATIVE_EXPIRE = 60 * 60 * 24 * 30


class MemcachedStore(StoreInterface):
    """
    Memcached store with JSON serialization and TTL.

    Notes:
    - Values are stored as UTF-8 JSON strings.
    - ttl=None stores without expiry; ttl <= 0 expires immediately.
    - Tags are not supported; get_keys raises TaggingNotSupportedError.
    """

    name = "memcached"
    supports_tagging = False

    def __init__(
        self,
        locations: str | list[str] = "localhost:11211",
        max_pool_size: int = 10,
        timeout: float | None = 5,
        client_options: dict[str, Any] | None = None,
        client: Any | None = None,
        **options: Any,
    ) -> None:
        """
        Initialize Memcached store.

        Args:
            locations: "host:port" server, a comma-separated list, or a list of servers
            max_pool_size: Connections per server
            timeout: Connect and socket timeout in seconds
            client_options: Extra keyword arguments for the pymemcache client
            client: Pre-built thread-safe pymemcache client; the store does not
                close a client it did not create
            **options: Unrecognized options are ignored
        """
        if options:
            logger.debug("Ignoring options for memcached store: %s", sorted(options))

        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0

        if client is not None:
            self._client = client
            self._owns_client = False
            self.locations: list[str] = []
            return

        if isinstance(locations, str):
            locations = [location.strip() for location in locations.split(",") if location.strip()]
        if not locations:
            raise ValueError("at least one memcached location is required")
        self.locations = list(locations)

        extra = dict(client_options or {})
        if len(self.locations) == 1:
            self._client = PooledClient(
                self.locations[0],
                connect_timeout=timeout,
                timeout=timeout,
                max_pool_size=max_pool_size,
                **extra,
            )
        else:
            self._client = HashClient(
                self.locations,
                connect_timeout=timeout,
                timeout=timeout,
                use_pooling=True,
                max_pool_size=max_pool_size,
                **extra,
            )
        self._owns_client = True

    # ------------ Helpers ------------

    @staticmethod
    def _expire_arg(ttl: int | None) -> int:
        """Map a TTL in seconds onto memcached's exptime."""
        if ttl is None:
            return 0
        if ttl <= 0:
            return -1
        if ttl > MAX_RELATIVE_EXPIRE:
            return int(time.time()) + ttl
        return ttl

    @staticmethod
    def _to_json(value: Any) -> bytes:
        # pymemcache encodes str values as ASCII; hand it UTF-8 bytes instead
        try:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Value of type {type(value).__name__} is not JSON serializable",
                details={"value_type": type(value).__name__, "error": str(e)},
            ) from e

    @staticmethod
    def _from_json(data: str | bytes | None) -> Any:
        if data is None:
            return MISSING
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return json.loads(data)
        except ValueError as e:
            logger.warning(
                f"Failed to decode JSON from cache, returning raw data: {e}",
                extra={"data_preview": data[:100], "error": str(e)},
            )
            return data

    @contextmanager
    def _command(self, operation: str, **context: Any) -> Iterator[None]:
        """Translate pymemcache and socket errors into store errors."""
        try:
            yield
        except (MemcacheUnexpectedCloseError, OSError) as e:
            logger.error(
                f"Memcached unavailable during {operation}: {e}",
                extra={"operation": operation, **context, "error": str(e)},
            )
            raise CacheConnectionError(self.name, details={"operation": operation, **context, "error": str(e)}) from e
        except MemcacheError as e:
            logger.error(
                f"Memcached {operation} failed: {e}",
                extra={"operation": operation, **context, "error": str(e)},
                exc_info=True,
            )
            raise CacheOperationError(
                f"Memcached {operation} failed: {e}",
                details={"backend": self.name, "operation": operation, **context, "error": str(e)},
            ) from e

    async def _run(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(func, *args, **kwargs)

    async def _set_one(self, key: str, payload: bytes, expire: int) -> bool:
        with self._command("set", key=key, expire=expire):
            stored = await self._run(self._client.set, key, payload, expire=expire, noreply=False)
        if stored:
            self._sets += 1
        return bool(stored)

    # ------------ Core Interface ------------

    async def get(self, key: str) -> Any:
        """Retrieve a value by key."""
        with self._command("get", key=key):
            data = await self._run(self._client.get, key)

        if data is None:
            self._misses += 1
            logger.debug("cache miss: %s", key)
            return MISSING

        self._hits += 1
        logger.debug("cache hit: %s", key)
        return self._from_json(data)

    async def set(
        self,
        key: str,
        value: Any,
        tags: list[str] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Store a value with optional TTL."""
        if tags:
            raise TaggingNotSupportedError(self.name, "set")

        logger.debug("cache set: %s", key)
        return await self._set_one(key, self._to_json(value), self._expire_arg(ttl))

    async def mget(self, keys: list[str]) -> list[Any]:
        """Retrieve multiple values with get_many, aligned to keys."""
        if not keys:
            return []

        with self._command("mget", key_count=len(keys)):
            found = await self._run(self._client.get_many, list(dict.fromkeys(keys)))

        values = []
        for key in keys:
            raw = found.get(key)
            if raw is None:
                self._misses += 1
            else:
                self._hits += 1
            values.append(self._from_json(raw))
        return values

    async def mset(
        self,
        values: dict[str, Any],
        tags: dict[str, list[str]] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Store multiple values as parallel single-key writes; True only if all succeed."""
        if tags and any(tags.values()):
            raise TaggingNotSupportedError(self.name, "mset")
        if not values:
            return True

        expire = self._expire_arg(ttl)
        payloads = {key: self._to_json(value) for key, value in values.items()}
        results = await asyncio.gather(*(self._set_one(key, payload, expire) for key, payload in payloads.items()))
        return all(results)

    async def expire(self, key: str, ttl: int | None = None) -> bool:
        """Delete the key when ttl is None, otherwise touch it with the new expiry."""
        if ttl is None:
            with self._command("delete", key=key):
                deleted = await self._run(self._client.delete, key, noreply=False)
            if deleted:
                self._deletes += 1
            return bool(deleted)

        expire = self._expire_arg(ttl)
        with self._command("touch", key=key, expire=expire):
            return bool(await self._run(self._client.touch, key, expire=expire, noreply=False))

    async def get_stats(self) -> dict[str, Any]:
        """Return store statistics."""
        total_requests = self._hits + self._misses
        return {
            "backend": self.name,
            "locations": self.locations,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round((self._hits / total_requests) * 100, 2) if total_requests else 0.0,
            "sets": self._sets,
            "deletes": self._deletes,
        }

    async def close(self) -> None:
        """Close pooled connections."""
        if not self._owns_client:
            return

        await self._run(self._client.close)
        logger.info("Closed Memcached store")
