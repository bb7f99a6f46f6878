"""Narrowing helpers for untyped TOML and JSON trees.

``tomllib.loads`` and ``json.loads`` hand back ``object``; these helpers turn
the parts forksync reads into typed values, or None when the shape is wrong.
They never raise, so a malformed config key or API item is simply ignored.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

__all__ = [
    "JsonObject",
    "as_array",
    "as_object",
    "string_field",
    "string_list_field",
    "table_field",
]

JsonObject = dict[str, object]


def as_object(value: object) -> JsonObject | None:
    """`value` as a string-keyed dict (TOML table, JSON object), else None."""
    if isinstance(value, dict) and all(isinstance(k, str) for k in value):  # pyright: ignore[reportUnknownVariableType]
        return cast(JsonObject, value)
    return None


def as_array(value: object) -> list[object] | None:
    if isinstance(value, list):
        return cast(list[object], value)
    return None


def _clean(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def string_field(obj: Mapping[str, object], key: str) -> str | None:
    """Stripped string at `key`; None if absent, blank or not a string."""
    return _clean(obj.get(key))


def table_field(obj: Mapping[str, object], key: str) -> JsonObject | None:
    return as_object(obj.get(key))


def string_list_field(obj: Mapping[str, object], key: str) -> list[str] | None:
    """Non-blank strings of the array at `key`; None if `key` is not an array."""
    items = as_array(obj.get(key))
    if items is None:
        return None
    return [s for s in map(_clean, items) if s is not None]
