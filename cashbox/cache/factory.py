"""
Cashbox — Store Factory

Builds the store behind a Cache from its ``store`` option:

- a registered name ("memory", "redis", "memcached", or one added with
  register_store), built with the remaining options
- a store class or factory callable, called with the remaining options
- a pre-built StoreInterface instance, used as-is

Network stores are imported lazily so redis / pymemcache stay optional.

Examples:
    from cashbox.cache.factory import create_store, create_store_from_config

    store = create_store("redis", url="redis://localhost:6379/0")
    store = create_store(MyStore, region="eu")

    from cashbox.config import CacheConfig, StoreBackend
    cfg = CacheConfig(store=StoreBackend.MEMCACHED, memcached_locations=["cache1:11211"])
    store = create_store_from_config(cfg)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..config import CacheConfig, StoreBackend
from ..errors import ConfigurationError, DependencyError
from .backends.memory import MemoryStore
from .interface import StoreInterface

logger = logging.getLogger(__name__)

StoreFactory = Callable[..., StoreInterface]


def _memory_store(**options: Any) -> StoreInterface:
    return MemoryStore(**options)


def _redis_store(**options: Any) -> StoreInterface:
    # Lazy import to avoid a hard dependency when the memory store is used
    try:
        from .backends.redis import RedisStore
    except ImportError as e:
        logger.error(
            "Redis store selected but redis client is not installed",
            extra={"package": "redis>=5.0.0", "error": str(e)},
        )
        raise DependencyError("redis", feature="the redis store", install_hint="pip install 'redis>=5.0.0'") from e

    return RedisStore(**options)


def _memcached_store(**options: Any) -> StoreInterface:
    try:
        from .backends.memcached import MemcachedStore
    except ImportError as e:
        logger.error(
            "Memcached store selected but pymemcache is not installed",
            extra={"package": "pymemcache>=4.0.0", "error": str(e)},
        )
        raise DependencyError(
            "pymemcache", feature="the memcached store", install_hint="pip install 'pymemcache>=4.0.0'"
        ) from e

    return MemcachedStore(**options)


_stores: dict[str, StoreFactory] = {
    StoreBackend.MEMORY.value: _memory_store,
    StoreBackend.REDIS.value: _redis_store,
    StoreBackend.MEMCACHED.value: _memcached_store,
}


def register_store(name: str, factory: StoreFactory) -> None:
    """
    Register a store factory under a name usable as ``Cache(store=name)``.

    Registering an existing name replaces it.
    """
    if not name or not isinstance(name, str):
        raise ConfigurationError("Store name must be a non-empty string", details={"name": repr(name)})
    if not callable(factory):
        raise ConfigurationError("Store factory must be callable", details={"name": name})

    _stores[name] = factory
    logger.debug("Registered cache store: %s", name)


def list_stores() -> list[str]:
    """List registered store names."""
    return list(_stores.keys())


def _build(factory: StoreFactory, label: str, options: dict[str, Any]) -> StoreInterface:
    try:
        store = factory(**options)
    except ConfigurationError:
        raise
    except Exception as e:
        logger.error(
            "Failed to create cache store '%s': %s",
            label,
            e,
            extra={"store": label, "error": str(e)},
            exc_info=True,
        )
        raise ConfigurationError(
            f"Failed to create cache store '{label}': {e}",
            details={"store": label, "error": str(e)},
        ) from e

    if not isinstance(store, StoreInterface):
        raise ConfigurationError(
            f"Cache store factory '{label}' did not return a StoreInterface",
            details={"store": label, "type": type(store).__name__},
        )
    return store


def create_store(store: str | StoreFactory | StoreInterface = "memory", **options: Any) -> StoreInterface:
    """
    Resolve the ``store`` option into a store instance.

    Args:
        store: Registered name, factory, or store instance
        **options: Passed unchanged to the factory (ignored for instances)

    Returns:
        Store instance

    Raises:
        ConfigurationError: If the name is unknown, the factory fails or
            returns something other than a StoreInterface
    """
    if isinstance(store, StoreInterface):
        if options:
            logger.debug("Ignoring options for pre-built store: %s", sorted(options))
        return store

    if isinstance(store, StoreBackend):
        store = store.value

    if isinstance(store, str):
        factory = _stores.get(store)
        if factory is None:
            raise ConfigurationError(
                f"No cache store defined for: {store}",
                details={"store": store, "supported": list_stores()},
            )
        logger.info("Creating cache store: %s", store, extra={"store": store})
        return _build(factory, store, options)

    if callable(store):
        label = getattr(store, "__name__", repr(store))
        logger.info("Creating cache store from factory: %s", label, extra={"store": label})
        return _build(store, label, options)

    raise ConfigurationError(
        "No store defined for cache",
        details={"type": type(store).__name__},
    )


def store_options_from_config(config: CacheConfig) -> dict[str, Any]:
    """Translate a CacheConfig into options for its store."""
    backend = StoreBackend(config.store)

    if backend == StoreBackend.REDIS:
        return {
            "url": config.redis_url,
            "host": config.redis_host,
            "port": config.redis_port,
            "database": config.redis_database,
            "max_connections": config.redis_max_connections,
            "socket_timeout": config.redis_socket_timeout,
        }

    if backend == StoreBackend.MEMCACHED:
        return {
            "locations": config.memcached_locations,
            "max_pool_size": config.memcached_pool_size,
            "timeout": config.memcached_timeout,
        }

    return {}


def create_store_from_config(config: CacheConfig) -> StoreInterface:
    """Build the store described by a CacheConfig."""
    backend = StoreBackend(config.store)
    return create_store(backend.value, **store_options_from_config(config))
