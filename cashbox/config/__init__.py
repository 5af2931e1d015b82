"""
Cashbox — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    CacheConfig,
    CashboxConfig,
    Environment,
    LogLevel,
    StoreBackend,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "CashboxConfig",
    # Enums
    "Environment",
    "StoreBackend",
    "LogLevel",
    # Config sections
    "CacheConfig",
]
