"""
Cashbox — Redis Store

Asynchronous Redis store with:
- JSON serialization for values
- Per-key TTL via EXPIRE
- Tag index as one Redis set per tag (SADD tag key)
- Writes applied as a single MULTI/EXEC transaction, so a reader never sees a
  value without its TTL and tags

Requires: redis>=5.0 with asyncio support

Example:
    store = RedisStore(url="redis://localhost:6379/0")
    await store.set("greeting", {"msg": "hello"}, tags=["greetings"], ttl=60)
    val = await store.get("greeting")

Tag sets are not pruned when a key expires. get_keys filters out members whose
key no longer exists, so stale members cost space but never show up in results.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ...errors import CacheConnectionError, CacheOperationError, SerializationError
from ..interface import MISSING, StoreInterface

logger = logging.getLogger(__name__)

try:
    # redis-py asyncio client (v4+)
    from redis.asyncio import Redis
    from redis.exceptions import ConnectionError as RedisConnectionError
    from redis.exceptions import RedisError
    from redis.exceptions import TimeoutError as RedisTimeoutError
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "Redis async client is required but not installed. "
        "Install with: pip install 'redis>=5.0.0' or add 'redis' to your dependencies."
    ) from e


class RedisStore(StoreInterface):
    """
    Redis store with JSON serialization, TTL and tagging.

    Notes:
    - Keys are used exactly as given; there is no prefixing.
    - Values are stored as UTF-8 JSON strings.
    - A tag is the literal name of a Redis set holding the tagged keys.
    - Redis errors are re-raised as CacheConnectionError / CacheOperationError
      with the original exception chained.
    """

    name = "redis"
    supports_tagging = True

    def __init__(
        self,
        url: str | None = None,
        host: str = "localhost",
        port: int = 6379,
        database: int | None = None,
        max_connections: int = 10,
        socket_timeout: float | None = 5,
        client_options: dict[str, Any] | None = None,
        client: Redis | None = None,
        **options: Any,
    ) -> None:
        """
        Initialize Redis store.

        Args:
            url: Connection URL, e.g. redis://localhost:6379/0 or rediss:// for TLS.
                Takes precedence over host/port.
            host: Redis host, used when no url is given
            port: Redis port, used when no url is given
            database: Database index to select
            max_connections: Connection pool size
            socket_timeout: Socket timeout in seconds
            client_options: Extra keyword arguments for the redis client
            client: Pre-built ``redis.asyncio.Redis`` (decode_responses=True);
                the store does not close a client it did not create
            **options: Unrecognized options are ignored
        """
        if options:
            logger.debug("Ignoring options for redis store: %s", sorted(options))

        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._deletes = 0

        if client is not None:
            self._client = client
            self._owns_client = False
            self.url = None
            return

        if not url:
            url = f"redis://{host}:{port}"

        extra: dict[str, Any] = dict(client_options or {})
        if database is not None:
            extra["db"] = database

        # Lazy connection; connects on first command
        self._client = Redis.from_url(  # type: ignore[call-overload]
            url=url,
            decode_responses=True,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            **extra,
        )
        self._owns_client = True
        self.url = url

    # ------------ Helpers ------------

    @staticmethod
    def _to_json(value: Any) -> str:
        """Serialize value to JSON string."""
        try:
            return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Value of type {type(value).__name__} is not JSON serializable",
                details={"value_type": type(value).__name__, "error": str(e)},
            ) from e

    @staticmethod
    def _from_json(data: str | bytes | None) -> Any:
        """Deserialize a stored JSON string. Returns MISSING if data is None."""
        if data is None:
            return MISSING
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        try:
            return json.loads(data)
        except ValueError as e:
            # Written by another client; hand it back untouched
            logger.warning(
                f"Failed to decode JSON from cache, returning raw data: {e}",
                extra={"data_preview": data[:100], "error": str(e)},
            )
            return data

    @contextmanager
    def _command(self, operation: str, **context: Any) -> Iterator[None]:
        """Translate redis-py errors into store errors."""
        try:
            yield
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(
                f"Redis unavailable during {operation}: {e}",
                extra={"operation": operation, **context, "error": str(e)},
            )
            raise CacheConnectionError(self.name, details={"operation": operation, **context, "error": str(e)}) from e
        except RedisError as e:
            logger.error(
                f"Redis {operation} failed: {e}",
                extra={"operation": operation, **context, "error": str(e)},
                exc_info=True,
            )
            raise CacheOperationError(
                f"Redis {operation} failed: {e}",
                details={"backend": self.name, "operation": operation, **context, "error": str(e)},
            ) from e

    # ------------ Core Interface ------------

    async def get(self, key: str) -> Any:
        """Retrieve a value by key."""
        with self._command("get", key=key):
            data = await self._client.get(key)

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
        """Store value, TTL and tags in one transaction."""
        payload = self._to_json(value)
        logger.debug("cache set: %s", key)

        with self._command("set", key=key, ttl=ttl):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.set(key, payload)
                # EXPIRE with a non-positive ttl deletes the key
                if ttl is not None:
                    pipe.expire(key, ttl)
                for tag in tags or ():
                    pipe.sadd(tag, key)
                replies = await pipe.execute()

        success = bool(replies[0])
        if success:
            self._sets += 1
        return success

    async def mget(self, keys: list[str]) -> list[Any]:
        """Retrieve multiple values in one round-trip using MGET."""
        if not keys:
            return []

        with self._command("mget", key_count=len(keys)):
            raw_values = await self._client.mget(keys)

        values = []
        for raw in raw_values:
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
        """Store multiple values, TTLs and tags in one transaction."""
        if not values:
            return True

        payloads = {key: self._to_json(value) for key, value in values.items()}

        with self._command("mset", key_count=len(values), ttl=ttl):
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.mset(payloads)
                if ttl is not None:
                    for key in payloads:
                        pipe.expire(key, ttl)
                for key, key_tags in (tags or {}).items():
                    for tag in key_tags:
                        pipe.sadd(tag, key)
                replies = await pipe.execute()

        success = bool(replies[0])
        if success:
            self._sets += len(values)
        return success

    async def expire(self, key: str, ttl: int | None = None) -> bool:
        """DEL the key when ttl is None, otherwise EXPIRE it."""
        if ttl is None:
            with self._command("delete", key=key):
                deleted = await self._client.delete(key)
            if deleted:
                self._deletes += 1
            return deleted == 1

        with self._command("expire", key=key, ttl=ttl):
            return bool(await self._client.expire(key, ttl))

    async def get_keys(self, tags: list[str]) -> list[str]:
        """SUNION the tag sets, dropping members whose key is gone."""
        if not tags:
            return []

        with self._command("get_keys", tags=tags):
            members = sorted(await self._client.sunion(tags))
            if not members:
                return []

            async with self._client.pipeline(transaction=False) as pipe:
                for key in members:
                    pipe.exists(key)
                exists = await pipe.execute()

        return [key for key, found in zip(members, exists) if found]

    async def get_stats(self) -> dict[str, Any]:
        """Return store statistics and basic Redis info."""
        stats: dict[str, Any] = {
            "backend": self.name,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": 0.0,
            "sets": self._sets,
            "deletes": self._deletes,
            "connected": False,
        }

        total_requests = self._hits + self._misses
        stats["hit_rate"] = round((self._hits / total_requests) * 100, 2) if total_requests else 0.0

        try:
            # PING to check connectivity
            stats["connected"] = bool(await self._client.ping())
            info = await self._client.info(section="server")
            stats["redis_version"] = info.get("redis_version")
            stats["redis_mode"] = info.get("redis_mode")
        except RedisError as e:
            # Stats stay usable when the server is down or INFO is restricted
            logger.warning(f"Failed to get Redis INFO (restricted or unavailable): {e}", extra={"error": str(e)})

        return stats

    async def close(self) -> None:
        """Close the Redis client and release resources."""
        if not self._owns_client:
            return

        try:
            await self._client.aclose()
            logger.info("Closed Redis store")
        finally:
            # Ensure pool disconnect
            await self._client.connection_pool.disconnect()
