"""Defaulting accessors for upstream payloads.

Mappers read every field through these helpers so that a missing key, a
``None`` in the middle of a path or a value of the wrong type yields the
caller's default instead of an exception.
"""

from collections.abc import Mapping, Sequence
from typing import Any


def safe_get(payload: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path (``"bet.stake.amount"``) from nested mappings.

    Integer segments index into lists (``"selections.0.name"``).
    """
    current = payload
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return default if current is None else current


def safe_first(payload: Any, paths: Sequence[str], default: Any = None) -> Any:
    """First path that resolves to a value; upstream renames fields often."""
    for path in paths:
        value = safe_get(payload, path)
        if value is not None:
            return value
    return default


def safe_float(payload: Any, path: str, default: float = 0.0) -> float:
    value = safe_get(payload, path, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_str(payload: Any, path: str, default: str = "") -> str:
    value = safe_get(payload, path, default)
    if isinstance(value, (dict, list)):
        return default
    return str(value)
