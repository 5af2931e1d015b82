"""
Cashbox — Store Interface

Defines the abstract interface that all cache stores must implement, and the
MISSING sentinel stores use to report a miss.

Stores receive arguments that the facade has already validated:
tags are normalized canonical strings and TTLs are whole seconds.
"""

from abc import ABC, abstractmethod
from typing import Any, Final

from ..errors import TaggingNotSupportedError


class _Missing:
    """Type of the MISSING sentinel."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Final = _Missing()
"""Returned for keys that are absent or expired. Distinct from None."""


class StoreInterface(ABC):
    """
    Abstract base class for cache stores.

    All stores implement get/set/mget/mset/expire. Tag lookups are an optional
    capability: stores that keep a tag index set ``supports_tagging = True``
    and override ``get_keys``.

    TTL semantics for every store:
        None  -> the entry never expires
        > 0   -> the entry expires after ``ttl`` seconds
        <= 0  -> the entry expires immediately
    """

    name: str = "store"
    supports_tagging: bool = False

    @abstractmethod
    async def get(self, key: str) -> Any:
        """
        Retrieve a value.

        Args:
            key: Cache key

        Returns:
            The stored value, or MISSING if absent or expired
        """

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        tags: list[str] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """
        Store a value, adding the key to each tag.

        Args:
            key: Cache key
            value: Value to store (must be serializable for network stores)
            tags: Canonical tag strings
            ttl: Time-to-live in seconds

        Returns:
            True if the value was stored
        """

    @abstractmethod
    async def mget(self, keys: list[str]) -> list[Any]:
        """
        Retrieve several values in one call.

        Returns:
            Values aligned to ``keys``, with MISSING for each miss
        """

    @abstractmethod
    async def mset(
        self,
        values: dict[str, Any],
        tags: dict[str, list[str]] | None = None,
        ttl: int | None = None,
    ) -> bool:
        """
        Store several values with the same TTL.

        Args:
            values: Mapping of key to value
            tags: Mapping of key to canonical tag strings
            ttl: Time-to-live in seconds, applied to every key

        Returns:
            True if every value was stored
        """

    @abstractmethod
    async def expire(self, key: str, ttl: int | None = None) -> bool:
        """
        Remove a key, or change its expiration.

        Args:
            key: Cache key
            ttl: New time-to-live in seconds; None removes the key

        Returns:
            True if the key existed
        """

    @abstractmethod
    async def get_stats(self) -> dict[str, Any]:
        """Return store statistics (hits, misses, sets, deletes...)."""

    @abstractmethod
    async def close(self) -> None:
        """Release network resources held by the store."""

    async def get_keys(self, tags: list[str]) -> list[str]:
        """
        Return the distinct keys carrying any of ``tags``.

        Stores without a tag index keep this default, which fails explicitly.
        """
        raise TaggingNotSupportedError(self.name, "get_keys")
