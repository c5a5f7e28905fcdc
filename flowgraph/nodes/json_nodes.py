"""JSON object helpers and numeric aggregates."""

from __future__ import annotations

import copy
from typing import Any

from ..engine.function_registry import flow_function
from ..engine.jtree import MISSING, get_by_path, merge, set_by_path


@flow_function(name="JsonMerge", section="JSON")
def json_merge(left: dict[str, Any] | None, right: dict[str, Any] | None) -> dict[str, Any]:
    """Deep-merge two objects into a new one; values from right win."""
    result = copy.deepcopy(left or {})
    return merge(result, right or {})


@flow_function(name="JsonGet", section="JSON")
def json_get(obj: dict[str, Any] | None, path: str) -> Any:
    """Read a dotted path, None when the object, path or value is missing."""
    if obj is None or not path:
        return None
    found = get_by_path(obj, path)
    return None if found is MISSING else found


@flow_function(name="JsonSet", section="JSON")
def json_set(obj: dict[str, Any] | None, path: str, value: Any) -> dict[str, Any]:
    """Return a copy of the object with a value written at a dotted path."""
    result = copy.deepcopy(obj or {})
    if not path:
        return result
    return set_by_path(result, path, value)


# --- Aggregates ---


@flow_function(name="Sum", section="JSON/Aggregates")
def sum_(numbers: list[float]) -> float:
    return float(sum(numbers or []))


@flow_function(name="Average", section="JSON/Aggregates")
def average(numbers: list[float]) -> float:
    """Arithmetic mean, 0 for an empty list."""
    if not numbers:
        return 0.0
    return sum(numbers) / len(numbers)


@flow_function(name="MinOf", section="JSON/Aggregates")
def min_of(numbers: list[float]) -> float:
    return min(numbers) if numbers else 0.0


@flow_function(name="MaxOf", section="JSON/Aggregates")
def max_of(numbers: list[float]) -> float:
    return max(numbers) if numbers else 0.0
