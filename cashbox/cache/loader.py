"""
Cashbox — Miss Loader

Helpers the facade uses to fill cache misses from a caller-supplied loader.

Single-key loaders are called as ``load(key)`` and return the value, or
``Loaded(value, tags)`` to tag it. Batch loaders are called once as
``load(missing_keys)`` and return values aligned to ``missing_keys``, or
``Loaded(values, tags_per_key)`` with tags aligned the same way.
Loaders may be plain functions or coroutine functions.
"""

import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import LoaderError
from .interface import MISSING
from .tags import TagsArg


@dataclass
class Loaded:
    """Loader result carrying tags along with the value(s)."""

    value: Any
    tags: Any = None


@dataclass
class MissResult:
    """Outcome of filling the misses of a batch read."""

    values: list[Any]
    loaded: dict[str, Any] = field(default_factory=dict)
    tags: dict[str, TagsArg] = field(default_factory=dict)


async def call_loader(load: Callable[[Any], Any], argument: Any) -> Any:
    """
    Invoke a loader and await its result when it is awaitable.

    Raises:
        LoaderError: Wrapping any exception raised by the loader
    """
    try:
        result = load(argument)
        if inspect.isawaitable(result):
            result = await result
    except Exception as e:
        raise LoaderError(
            f"Cache loader failed: {e}",
            details={"loader": getattr(load, "__name__", repr(load)), "error": str(e)},
        ) from e
    return result


def unpack_single(result: Any) -> tuple[Any, TagsArg]:
    """Split a single-key loader result into (value, tags)."""
    value, tags = (result.value, result.tags) if isinstance(result, Loaded) else (result, None)
    if value is MISSING:
        raise LoaderError("Invalid value returned from load function: MISSING cannot be cached")
    return value, tags


def _unpack_batch(result: Any, missing: list[str]) -> tuple[Sequence[Any], Sequence[Any] | None]:
    if isinstance(result, Loaded):
        values, tags = result.value, result.tags
    else:
        values, tags = result, None

    if not isinstance(values, (list, tuple)):
        raise LoaderError(
            'Invalid values returned from load function: "values" must be a list',
            details={"type": type(values).__name__},
        )
    if len(values) != len(missing):
        raise LoaderError(
            "Invalid values returned from load function: expected one value per missing key",
            details={"expected": len(missing), "received": len(values)},
        )
    if any(value is MISSING for value in values):
        raise LoaderError("Invalid values returned from load function: MISSING cannot be cached")
    if tags is not None:
        if not isinstance(tags, (list, tuple)) or len(tags) != len(missing):
            raise LoaderError(
                'Invalid tags returned from load function: "tags" must be a list aligned to the missing keys',
                details={"expected": len(missing), "type": type(tags).__name__},
            )
    return values, tags


async def load_missing(
    keys: Sequence[str],
    values: Sequence[Any],
    load: Callable[[Any], Any] | None,
) -> MissResult:
    """
    Fill the misses of a batch read.

    The loader runs at most once, with the distinct missing keys in the order
    they first appear. The merged result is re-projected onto ``keys`` so
    repeated keys all receive the same value.

    Args:
        keys: Requested keys
        values: Store results aligned to ``keys`` (MISSING for a miss)
        load: Batch loader, or None

    Returns:
        MissResult with the merged values and the newly loaded entries

    Raises:
        LoaderError: If the loader fails or returns misaligned data
    """
    hits: dict[str, Any] = {}
    missing: list[str] = []

    for key, value in zip(keys, values):
        if value is MISSING:
            if key not in hits and key not in missing:
                missing.append(key)
        else:
            hits[key] = value

    # A key can be both a hit and a miss only when listed twice; the hit wins
    missing = [key for key in missing if key not in hits]

    if load is None or not missing:
        return MissResult(values=list(values))

    result = await call_loader(load, list(missing))
    loaded_values, loaded_tags = _unpack_batch(result, missing)

    loaded = dict(zip(missing, loaded_values))
    tags: dict[str, TagsArg] = {}
    if loaded_tags is not None:
        tags = {key: key_tags for key, key_tags in zip(missing, loaded_tags) if key_tags is not None}

    merged = {**hits, **loaded}
    return MissResult(
        values=[merged[key] for key in keys],
        loaded=loaded,
        tags=tags,
    )
