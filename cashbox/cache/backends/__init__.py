"""
Cashbox — Store Backends

Exports the always-available store implementation.

The Redis and Memcached stores are lazy-loaded via factory.py so their client
libraries stay optional.
"""

from .memory import MemoryStore

__all__ = [
    "MemoryStore",
]
