"""Merge policies used when hydrating a container from persisted data.

None of these helpers mutate their inputs; hydration always works on a
copy of the container's initial value.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from enum import StrEnum
from typing import Any


class MergeStrategy(StrEnum):
    """How a container combines its initial value with a stored value."""

    RECORD = "record"
    """Merge the stored value over a copy of the initial value."""

    REPLACE = "replace"
    """Use the stored value wholesale in place of the initial value."""


def shallow_merge(initial: Any, stored: Any) -> Any:
    """Merge top-level keys of *stored* over *initial*.

    Keys in *stored* win.  When either side is not a mapping, *stored* is
    returned as-is.
    """
    if not isinstance(initial, Mapping) or not isinstance(stored, Mapping):
        return stored
    merged = dict(initial)
    merged.update(stored)
    return merged


def _merge_dict(target: dict[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in incoming.items():
        existing = target.get(key)
        if isinstance(value, Mapping) and isinstance(existing, dict):
            _merge_dict(existing, value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def deep_merge(initial: Any, stored: Any) -> Any:
    """Recursively merge *stored* over *initial*.

    Nested mappings are merged key by key; any other value in *stored*
    replaces the corresponding value in *initial*.
    """
    if not isinstance(initial, Mapping) or not isinstance(stored, Mapping):
        return stored
    return _merge_dict(copy.deepcopy(dict(initial)), stored)
