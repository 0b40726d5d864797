"""Dotted-path lookups against rows and response bodies."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict


class _Absent:
    """Sentinel for a path segment that could not be resolved."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def _step(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(segment, ABSENT)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        try:
            return current[int(segment)]
        except (ValueError, IndexError):
            return ABSENT
    return getattr(current, segment, ABSENT)


def resolve_path(obj: Any, path: str | None, separator: str = ".") -> Any:
    """Walk ``path`` through nested mappings, sequences and attributes.

    An empty path returns ``obj`` itself. Any missing segment yields ``ABSENT``;
    this function never raises for a missing key.
    """
    if not path:
        return obj
    current = obj
    for segment in path.split(separator):
        if current is None or current is ABSENT:
            return ABSENT
        current = _step(current, segment)
    return current


def resolve_or_none(obj: Any, path: str | None) -> Any:
    """Like ``resolve_path`` but maps ``ABSENT`` to ``None``."""
    value = resolve_path(obj, path)
    return None if value is ABSENT else value


def cell_text(row: Any, key: str) -> str:
    """String projection of a cell; missing or ``None`` values project to ``""``."""
    value = resolve_path(row, key)
    if value is ABSENT or value is None:
        return ""
    return str(value)


def flatten_object(obj: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flatten nested mappings into dotted keys, e.g. for query strings."""
    flattened: Dict[str, Any] = {}
    for key, value in obj.items():
        new_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flattened.update(flatten_object(value, new_key))
        else:
            flattened[new_key] = value
    return flattened
