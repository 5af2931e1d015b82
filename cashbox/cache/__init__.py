"""
Cashbox — Cache Module

One cache contract over pluggable stores.

- facade.py: Cache, the public entry point
- interface.py: StoreInterface all stores implement, and the MISSING sentinel
- factory.py: store registry and construction
- tags.py / ttl.py / loader.py: tag codec, TTL resolution, miss loading
- backends/: memory store (redis and memcached are lazy-loaded)

Usage:
    from cashbox.cache import Cache, MISSING

    cache = Cache()
    await cache.set("key", "value", tags=["group"], ttl=3600)
    value = await cache.get("key")
"""

from .facade import Cache
from .factory import create_store, create_store_from_config, list_stores, register_store
from .interface import MISSING, StoreInterface
from .loader import Loaded
from .tags import CategorizedTag, PlainTag, Tag, normalize_tags
from .ttl import parse_duration, resolve_ttl

__all__ = [
    # Facade
    "Cache",
    "Loaded",
    "MISSING",
    # Store construction
    "create_store",
    "create_store_from_config",
    "list_stores",
    "register_store",
    # Interface
    "StoreInterface",
    # Tags and TTL
    "Tag",
    "PlainTag",
    "CategorizedTag",
    "normalize_tags",
    "parse_duration",
    "resolve_ttl",
]
