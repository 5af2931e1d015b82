"""
Cashbox — Tag Codec

Normalizes the tag shapes accepted by the facade into an ordered list of
canonical tag strings:

    None                          -> []
    "news"                        -> ["news"]
    ["news", "sports"]            -> ["news", "sports"]
    {"user": 42}                  -> ["user:42"]
    {"user": [1, 2], "kind": "a"} -> ["user:1", "user:2", "kind:a"]
    PlainTag("news")              -> ["news"]
    CategorizedTag("user", 42)    -> ["user:42"]

Sequences may mix any of the single-tag shapes. Duplicates are dropped,
first occurrence wins.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from ..errors import ErrorCode, ValidationError

CATEGORY_SEPARATOR = ":"


@dataclass(frozen=True)
class PlainTag:
    """A tag used as-is."""

    name: str

    @property
    def canonical(self) -> str:
        return self.name


@dataclass(frozen=True)
class CategorizedTag:
    """A ``category: value`` tag, encoded as ``"category:value"``."""

    category: str
    value: str | int

    @property
    def canonical(self) -> str:
        return f"{self.category}{CATEGORY_SEPARATOR}{self.value}"


Tag: TypeAlias = PlainTag | CategorizedTag
TagsArg: TypeAlias = str | Tag | Mapping[str, Any] | Iterable[str | Tag | Mapping[str, Any]] | None


def _invalid(message: str, tags: Any) -> ValidationError:
    return ValidationError(
        message,
        details={"tags": repr(tags)[:200]},
        code=ErrorCode.INVALID_TAGS,
    )


def _check_name(name: Any, what: str, tags: Any) -> str:
    if not isinstance(name, str) or not name:
        raise _invalid(f"Invalid tag: {what} must be a non-empty string", tags)
    return name


def _check_value(value: Any, tags: Any) -> str | int:
    # bool is an int subclass but "flag:True" is never what the caller meant
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise _invalid("Invalid tag: category values must be strings or integers", tags)
    if value == "":
        raise _invalid("Invalid tag: category values must not be empty", tags)
    return value


def _expand_mapping(mapping: Mapping[Any, Any], tags: Any) -> Iterable[Tag]:
    for category, values in mapping.items():
        category = _check_name(category, "category", tags)
        if isinstance(values, (list, tuple, set, frozenset)):
            if not values:
                raise _invalid(f"Invalid tag: category '{category}' has no values", tags)
            for value in values:
                yield CategorizedTag(category, _check_value(value, tags))
        else:
            yield CategorizedTag(category, _check_value(values, tags))


def _expand_one(item: Any, tags: Any) -> Iterable[Tag]:
    if isinstance(item, str):
        yield PlainTag(_check_name(item, "tag", tags))
    elif isinstance(item, PlainTag):
        yield PlainTag(_check_name(item.name, "tag", tags))
    elif isinstance(item, CategorizedTag):
        yield CategorizedTag(_check_name(item.category, "category", tags), _check_value(item.value, tags))
    elif isinstance(item, Mapping):
        yield from _expand_mapping(item, tags)
    else:
        raise _invalid(f"Invalid tag of type {type(item).__name__}", tags)


def parse_tags(tags: TagsArg) -> list[Tag]:
    """
    Parse any accepted tag shape into Tag objects, preserving order.

    Raises:
        ValidationError: If the shape is not one of the accepted forms
    """
    if tags is None:
        return []

    if isinstance(tags, (str, PlainTag, CategorizedTag, Mapping)):
        return list(_expand_one(tags, tags))

    if isinstance(tags, (list, tuple, set, frozenset)):
        parsed: list[Tag] = []
        for item in tags:
            if isinstance(item, (list, tuple, set, frozenset)):
                raise _invalid("Invalid tag: nested tag sequences are not allowed", tags)
            parsed.extend(_expand_one(item, tags))
        return parsed

    raise _invalid(f"Invalid tags of type {type(tags).__name__}", tags)


def normalize_tags(tags: TagsArg) -> list[str]:
    """
    Normalize a tag argument into ordered, de-duplicated canonical strings.

    Args:
        tags: None, a tag, a category mapping, or a sequence of those

    Returns:
        Canonical tag strings in first-seen order

    Raises:
        ValidationError: If the tag shape is malformed
    """
    return list(dict.fromkeys(tag.canonical for tag in parse_tags(tags)))


def normalize_tag_map(
    tags_by_key: Mapping[str, TagsArg] | None,
    keys: Iterable[str],
) -> dict[str, list[str]]:
    """
    Normalize per-key tags for a batch write.

    Keys whose tags normalize to nothing are left out of the result.

    Raises:
        ValidationError: If the argument is not a mapping, names a key outside
            the batch, or holds malformed tags
    """
    if tags_by_key is None:
        return {}

    if not isinstance(tags_by_key, Mapping):
        raise _invalid("Invalid tags for a batch write: expected a mapping of key to tags", tags_by_key)

    batch = set(keys)
    unknown = [key for key in tags_by_key if key not in batch]
    if unknown:
        raise ValidationError(
            "Invalid tags for a batch write: tags given for keys that are not being set",
            details={"keys": unknown[:20]},
            code=ErrorCode.INVALID_TAGS,
        )

    result: dict[str, list[str]] = {}
    for key, tags in tags_by_key.items():
        canonical = normalize_tags(tags)
        if canonical:
            result[key] = canonical
    return result
