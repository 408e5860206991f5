"""
Helper utilities for AllBeads.

Provides general-purpose helper functions for:
- String manipulation
- List operations
- Hashing and formatting
"""

from __future__ import annotations

import hashlib
from datetime import timedelta
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


def truncate_string(
    text: str,
    max_length: int,
    suffix: str = "...",
) -> str:
    """
    Truncate a string to a maximum length.

    Args:
        text: Input string
        max_length: Maximum length including suffix
        suffix: Suffix to append when truncated

    Returns:
        Truncated string
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix


def deduplicate(
    items: Iterable[T],
    key: Callable[[T], Any] | None = None,
) -> list[T]:
    """
    Remove duplicates from a list while preserving order.

    Args:
        items: Items to deduplicate
        key: Function to extract comparison key

    Returns:
        Deduplicated list
    """
    seen: set[Any] = set()
    result: list[T] = []

    for item in items:
        k = key(item) if key else item
        if k not in seen:
            seen.add(k)
            result.append(item)

    return result


def format_duration(seconds: float) -> str:
    """
    Format seconds as human-readable duration.

    Args:
        seconds: Duration in seconds

    Returns:
        Human-readable string (e.g., "2h 30m 15s")
    """
    if seconds < 0:
        return "0s"

    delta = timedelta(seconds=int(seconds))

    parts = []

    days = delta.days
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, secs = divmod(remainder, 60)

    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)


def hash_string(text: str, algorithm: str = "sha256") -> str:
    """
    Hash a string.

    Args:
        text: String to hash
        algorithm: Hash algorithm (md5, sha1, sha256)

    Returns:
        Hex digest
    """
    h = hashlib.new(algorithm)
    h.update(text.encode("utf-8"))
    return h.hexdigest()


def ensure_list(value: Any) -> list:
    """
    Ensure a value is a list.

    Args:
        value: Value to convert

    Returns:
        List containing value(s)
    """
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set)):
        return list(value)
    return [value]
