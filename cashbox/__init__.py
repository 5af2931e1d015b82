"""
Cashbox — Cache Abstraction

One asynchronous contract (get, set, mget, mset, expire, tag lookup) with
TTLs and miss loading over memory, Redis and Memcached stores.
"""

__version__ = "1.0.0"

from .cache import MISSING, Cache, CategorizedTag, Loaded, PlainTag, StoreInterface, register_store
from .errors import (
    CacheConnectionError,
    CacheError,
    CacheOperationError,
    CashboxError,
    ConfigurationError,
    LoaderError,
    TaggingNotSupportedError,
    ValidationError,
    WriteBackError,
)

__all__ = [
    "Cache",
    "MISSING",
    "Loaded",
    "PlainTag",
    "CategorizedTag",
    "StoreInterface",
    "register_store",
    # Errors
    "CashboxError",
    "CacheError",
    "CacheConnectionError",
    "CacheOperationError",
    "ConfigurationError",
    "LoaderError",
    "TaggingNotSupportedError",
    "ValidationError",
    "WriteBackError",
]
