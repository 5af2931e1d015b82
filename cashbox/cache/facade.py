"""
Cashbox — Cache Facade

The public entry point. Validates and normalizes arguments, encodes tags,
resolves TTLs, fills misses from caller-supplied loaders and delegates to the
configured store.

Usage:
    cache = Cache(store="redis", url="redis://localhost:6379/0")

    await cache.set("user:1", {"name": "Ada"}, tags={"team": "core"}, ttl="5 minutes")
    user = await cache.get("user:1")

    async def load_users(ids):
        return [await db.fetch_user(i) for i in ids]

    users = await cache.mget(["user:1", "user:2"], load=load_users, ttl=300)
    keys = await cache.get_keys({"team": "core"})
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from types import TracebackType
from typing import Any

from ..config import CacheConfig, get_config
from ..errors import ErrorCode, TaggingNotSupportedError, ValidationError, WriteBackError
from .factory import StoreFactory, create_store, create_store_from_config
from .interface import MISSING, StoreInterface
from .loader import call_loader, load_missing, unpack_single
from .tags import TagsArg, normalize_tag_map, normalize_tags
from .ttl import TTLArg, resolve_ttl

Loader = Callable[[Any], Any]


def _check_key(key: Any, operation: str) -> str:
    if not isinstance(key, str) or not key:
        raise ValidationError(
            f'Invalid arguments for cache.{operation}: "key" must be a non-empty string',
            details={"operation": operation, "type": type(key).__name__},
            code=ErrorCode.INVALID_KEY,
        )
    return key


def _check_keys(keys: Any, operation: str) -> list[str]:
    if not isinstance(keys, (list, tuple)):
        raise ValidationError(
            f'Invalid arguments for cache.{operation}: "keys" must be a list',
            details={"operation": operation, "type": type(keys).__name__},
            code=ErrorCode.INVALID_KEY,
        )
    return [_check_key(key, operation) for key in keys]


def _check_loader(load: Any, operation: str) -> Loader | None:
    if load is not None and not callable(load):
        raise ValidationError(
            f'Invalid arguments for cache.{operation}: "load" must be callable',
            details={"operation": operation, "type": type(load).__name__},
        )
    return load


def _check_value(value: Any, operation: str) -> Any:
    if value is MISSING:
        raise ValidationError(
            f'Invalid arguments for cache.{operation}: "value" is required and cannot be MISSING',
            details={"operation": operation},
        )
    return value


class Cache:
    """
    Uniform cache over interchangeable stores.

    Every operation is a coroutine that either returns a result or raises:
    ValidationError for bad arguments (before the store is touched), store
    errors from the backend, LoaderError when a loader fails, WriteBackError
    when loaded values cannot be stored, and TaggingNotSupportedError when
    tags are used with a store that has no tag index.
    """

    def __init__(self, store: str | StoreFactory | StoreInterface = "memory", **options: Any):
        """
        Create a cache.

        Args:
            store: Registered store name ("memory", "redis", "memcached"),
                a store class or factory, or a store instance
            **options: Passed unchanged to the store factory
        """
        self.store: StoreInterface = create_store(store, **options)

    @classmethod
    def from_config(cls, config: CacheConfig | None = None) -> Cache:
        """Create a cache from configuration (environment config by default)."""
        if config is None:
            config = get_config().cache
        return cls(store=create_store_from_config(config))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(store={self.store.name!r})"

    async def __aenter__(self) -> Cache:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------ Helpers ------------

    def _require_tagging(self, operation: str) -> None:
        if not self.store.supports_tagging:
            raise TaggingNotSupportedError(self.store.name, operation)

    async def _write(self, key: str, value: Any, tags: list[str], ttl: int | None) -> bool:
        if tags:
            self._require_tagging("set")
        return await self.store.set(key, value, tags or None, ttl)

    async def _write_many(self, values: dict[str, Any], tags: dict[str, list[str]], ttl: int | None) -> bool:
        if tags:
            self._require_tagging("mset")
        return await self.store.mset(values, tags or None, ttl)

    # ------------ Operations ------------

    async def get(
        self,
        key: str | Sequence[str],
        load: Loader | None = None,
        ttl: TTLArg = None,
    ) -> Any:
        """
        Get a value, loading it on a miss.

        Args:
            key: Cache key; a list of keys is handled by mget
            load: Called as ``load(key)`` on a miss; returns the value or
                ``Loaded(value, tags)``. May be a coroutine function.
            ttl: TTL applied when a loaded value is written back

        Returns:
            The cached or loaded value, or MISSING on a miss without a loader

        Raises:
            ValidationError: Invalid key, loader or TTL
            LoaderError: The loader failed
            WriteBackError: The loaded value could not be stored
        """
        if isinstance(key, (list, tuple)):
            return await self.mget(key, load, ttl)

        key = _check_key(key, "get")
        load = _check_loader(load, "get")
        ttl_seconds = resolve_ttl(ttl)

        value = await self.store.get(key)
        if value is not MISSING or load is None:
            return value

        loaded, tags = unpack_single(await call_loader(load, key))
        canonical = normalize_tags(tags)

        try:
            await self._write(key, loaded, canonical, ttl_seconds)
        except (ValidationError, TaggingNotSupportedError):
            raise
        except Exception as e:
            raise WriteBackError(
                f"Failed to write loaded value back to cache: {e}",
                value=loaded,
                details={"key": key, "error": str(e)},
            ) from e

        return loaded

    async def set(
        self,
        key: str | Mapping[str, Any],
        value: Any = MISSING,
        tags: TagsArg | Mapping[str, TagsArg] = None,
        ttl: TTLArg = None,
    ) -> bool:
        """
        Store a value with optional tags and TTL.

        Args:
            key: Cache key, or a mapping of key to value (handled by mset)
            value: Value to store; omitted when ``key`` is a mapping
            tags: A tag, list of tags or ``{category: value(s)}`` mapping; for
                the mapping form, a mapping of key to such tags
            ttl: Seconds, duration text ("5 minutes") or timedelta

        Returns:
            True if the store accepted the write
        """
        if isinstance(key, Mapping):
            if value is not MISSING:
                raise ValidationError(
                    'Invalid arguments for cache.set: "value" must be omitted when setting a mapping; '
                    "pass tags= and ttl= by keyword",
                    details={"operation": "set"},
                )
            return await self.mset(key, tags, ttl)

        key = _check_key(key, "set")
        value = _check_value(value, "set")
        canonical = normalize_tags(tags)
        ttl_seconds = resolve_ttl(ttl)

        return await self._write(key, value, canonical, ttl_seconds)

    async def mget(
        self,
        keys: Sequence[str],
        load: Loader | None = None,
        ttl: TTLArg = None,
    ) -> list[Any]:
        """
        Get several values in one store call, loading the misses in one batch.

        Args:
            keys: Cache keys
            load: Called once as ``load(missing_keys)``; returns values aligned
                to ``missing_keys`` or ``Loaded(values, tags_per_key)``
            ttl: TTL applied when loaded values are written back

        Returns:
            Values in the order of ``keys`` (MISSING where nothing was found)

        Raises:
            ValidationError: Invalid keys, loader or TTL
            LoaderError: The loader failed or returned misaligned data
            WriteBackError: The loaded values could not be stored
        """
        keys = _check_keys(keys, "mget")
        load = _check_loader(load, "mget")
        ttl_seconds = resolve_ttl(ttl)

        if not keys:
            return []

        values = await self.store.mget(keys)
        result = await load_missing(keys, values, load)

        if not result.loaded:
            return result.values

        tag_map = normalize_tag_map(result.tags, result.loaded)

        try:
            await self._write_many(result.loaded, tag_map, ttl_seconds)
        except (ValidationError, TaggingNotSupportedError):
            raise
        except Exception as e:
            raise WriteBackError(
                f"Failed to write loaded values back to cache: {e}",
                value=result.values,
                details={"keys": list(result.loaded)[:20], "error": str(e)},
            ) from e

        return result.values

    async def mset(
        self,
        values: Mapping[str, Any],
        tags: Mapping[str, TagsArg] | None = None,
        ttl: TTLArg = None,
    ) -> bool:
        """
        Store several values with one TTL in a single store call.

        Args:
            values: Mapping of key to value
            tags: Mapping of key to tags, for keys in ``values``
            ttl: TTL applied to every key

        Returns:
            True if every value was stored
        """
        if not isinstance(values, Mapping):
            raise ValidationError(
                'Invalid arguments for cache.mset: "values" must be a mapping of key to value',
                details={"operation": "mset", "type": type(values).__name__},
            )

        batch = {_check_key(key, "mset"): _check_value(value, "mset") for key, value in values.items()}
        tag_map = normalize_tag_map(tags, batch)
        ttl_seconds = resolve_ttl(ttl)

        if not batch:
            return True

        return await self._write_many(batch, tag_map, ttl_seconds)

    async def expire(self, key: str, ttl: TTLArg = None) -> bool:
        """
        Remove a key, or change its expiration.

        Args:
            key: Cache key
            ttl: New TTL; omit to remove the key

        Returns:
            True if the key existed
        """
        key = _check_key(key, "expire")
        ttl_seconds = resolve_ttl(ttl)

        return await self.store.expire(key, ttl_seconds)

    async def get_keys(self, tags: TagsArg) -> list[str]:
        """
        Return the distinct keys carrying any of the given tags.

        Order is unspecified.

        Raises:
            ValidationError: Malformed tags
            TaggingNotSupportedError: The store has no tag index
        """
        canonical = normalize_tags(tags)
        self._require_tagging("get_keys")
        if not canonical:
            return []

        return list(dict.fromkeys(await self.store.get_keys(canonical)))

    async def get_stats(self) -> dict[str, Any]:
        """Return statistics from the store."""
        return await self.store.get_stats()

    async def close(self) -> None:
        """Release the store's resources."""
        await self.store.close()
