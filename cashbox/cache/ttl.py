"""
Cashbox — TTL Resolution

Converts the TTL forms accepted by the facade into whole seconds before they
reach any store. Accepted forms:

- None: no expiration
- int >= 0: seconds
- datetime.timedelta
- duration text such as "1s", "1 sec", "5 minutes", "1h 30m", "2 days"

Duration text may resolve to zero or a negative number ("0s", "-5 sec"),
which stores treat as "expire immediately".
"""

import re
from datetime import timedelta
from typing import TypeAlias

from ..errors import ErrorCode, ValidationError

TTLArg: TypeAlias = int | str | timedelta | None

_UNIT_SECONDS: dict[str, float] = {
    "ms": 0.001,
    "msec": 0.001,
    "msecs": 0.001,
    "millisecond": 0.001,
    "milliseconds": 0.001,
    "s": 1,
    "sec": 1,
    "secs": 1,
    "second": 1,
    "seconds": 1,
    "m": 60,
    "min": 60,
    "mins": 60,
    "minute": 60,
    "minutes": 60,
    "h": 3600,
    "hr": 3600,
    "hrs": 3600,
    "hour": 3600,
    "hours": 3600,
    "d": 86400,
    "day": 86400,
    "days": 86400,
    "w": 604800,
    "wk": 604800,
    "week": 604800,
    "weeks": 604800,
    "y": 31536000,
    "yr": 31536000,
    "year": 31536000,
    "years": 31536000,
}

_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([a-z]*)")


def _invalid(message: str, ttl: object) -> ValidationError:
    return ValidationError(message, details={"ttl": repr(ttl)}, code=ErrorCode.INVALID_TTL)


def parse_duration(text: str) -> int:
    """
    Parse a duration expression into whole seconds.

    A bare number is read as seconds. Fractions of a second are truncated.

    Args:
        text: Duration expression, e.g. "90", "1.5 min", "1h 30m"

    Returns:
        Number of seconds (may be zero or negative)

    Raises:
        ValidationError: If the text is not a duration
    """
    source = text.strip().lower()
    negative = source.startswith("-")
    if negative:
        source = source[1:].lstrip()

    total = 0.0
    found = False
    position = 0
    for match in _PART_RE.finditer(source):
        # Only whitespace and commas may separate the parts
        if source[position : match.start()].strip(" ,"):
            break
        amount, unit = match.groups()
        multiplier = _UNIT_SECONDS.get(unit or "s")
        if multiplier is None:
            raise _invalid(f"Invalid TTL unit {unit!r} in {text!r}", text)
        total += float(amount) * multiplier
        found = True
        position = match.end()

    if not found or source[position:].strip(" ,"):
        raise _invalid(f"Invalid TTL expression: {text!r}", text)

    seconds = int(total)
    return -seconds if negative else seconds


def resolve_ttl(ttl: TTLArg) -> int | None:
    """
    Resolve a TTL argument to whole seconds.

    Raises:
        ValidationError: For negative integers, booleans, malformed text or
            unsupported types
    """
    if ttl is None:
        return None

    if isinstance(ttl, bool):
        raise _invalid("Invalid TTL: booleans are not durations", ttl)

    if isinstance(ttl, int):
        if ttl < 0:
            raise _invalid("Invalid TTL: seconds must be a non-negative integer", ttl)
        return ttl

    if isinstance(ttl, timedelta):
        return int(ttl.total_seconds())

    if isinstance(ttl, str):
        return parse_duration(ttl)

    raise _invalid(f"Invalid TTL of type {type(ttl).__name__}", ttl)
