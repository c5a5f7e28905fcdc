"""
JSON tree utilities.

A JTree is a plain Python value: None, bool, int, float, str, list or dict
with string keys. Paths are dotted (``a.b.0.c``); numeric segments index
lists.
"""

from __future__ import annotations

import copy
import dataclasses
import json
import math
import re
import types
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Union, get_args, get_origin
from uuid import UUID

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import CoercionError


class _Missing:
    """Sentinel returned by get_by_path when a path does not resolve."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()

_INDEX_RE = re.compile(r"^\d+$")


def _is_index(segment: str) -> bool:
    return bool(_INDEX_RE.match(segment))


def get_by_path(tree: Any, path: str) -> Any:
    """
    Read the value at a dotted path.

    Returns MISSING (never raises) when a segment is absent or the value at
    that point is not a container of the right kind. An empty path returns
    the tree itself.
    """
    if not path:
        return tree

    current = tree
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, list):
            if not _is_index(segment):
                return MISSING
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current


def set_by_path(tree: dict[str, Any] | list[Any], path: str, value: Any) -> dict[str, Any] | list[Any]:
    """
    Write a value at a dotted path, mutating the tree in place.

    Missing intermediate segments become dicts; scalar values sitting in the
    way are replaced by dicts. Lists are padded with None when a numeric
    segment points past their end.
    """
    if not path:
        raise ValueError("Path must not be empty")
    if not isinstance(tree, (dict, list)):
        raise TypeError(f"Cannot set a path on {type(tree).__name__}")

    segments = path.split(".")
    if isinstance(tree, list) and not _is_index(segments[0]):
        raise ValueError(f"Segment '{segments[0]}' cannot index a list")

    _assign(tree, segments, copy.deepcopy(value))
    return tree


def _assign(container: Any, segments: list[str], value: Any) -> Any:
    segment, rest = segments[0], segments[1:]

    if isinstance(container, list) and _is_index(segment):
        index = int(segment)
        while len(container) <= index:
            container.append(None)
        container[index] = _assign(container[index], rest, value) if rest else value
        return container

    if not isinstance(container, dict):
        container = {}
    container[segment] = _assign(container.get(segment), rest, value) if rest else value
    return container


def merge(dst: dict[str, Any], src: Mapping[str, Any] | None) -> dict[str, Any]:
    """Recursively merge src into dst. Dicts merge, anything else from src wins."""
    if not src:
        return dst

    for key, value in src.items():
        existing = dst.get(key)
        if isinstance(existing, dict) and isinstance(value, Mapping):
            merge(existing, value)
        else:
            dst[key] = copy.deepcopy(value)
    return dst


def to_plain_object(tree: Any) -> Any:
    """Return a detached native copy of a tree (tuples become lists)."""
    if isinstance(tree, Mapping):
        return {str(key): to_plain_object(value) for key, value in tree.items()}
    if isinstance(tree, (list, tuple)):
        return [to_plain_object(item) for item in tree]
    return tree


def to_jtree(value: Any) -> Any:
    """Serialize an arbitrary function return value into a JTree."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return to_jtree(value.value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jtree(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return {str(key): to_jtree(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jtree(item) for item in value]
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


# --- Literal parsing ---


def parse_literal(text: str) -> Any:
    """Parse text as a JSON literal, falling back to the raw string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def ensure_valid_json(text: str) -> str:
    """
    Repair the common case of a rendered array with bare string elements.

    ``[a, b, 3]`` becomes ``["a", "b", 3]``. Anything already valid, or not
    an array, is returned unchanged.
    """
    stripped = text.strip()
    if not (stripped.startswith("[") and stripped.endswith("]")):
        return text
    try:
        json.loads(stripped)
        return text
    except json.JSONDecodeError:
        pass

    inner = stripped[1:-1].strip()
    if not inner:
        return "[]"

    items = []
    for element in split_top_level(inner):
        element = element.strip()
        try:
            json.loads(element)
            items.append(element)
        except json.JSONDecodeError:
            items.append(json.dumps(element.strip("'")))
    return "[" + ", ".join(items) + "]"


def split_top_level(text: str, separator: str = ",") -> list[str]:
    """Split on a separator that is not nested inside brackets or quotes."""
    parts: list[str] = []
    depth = 0
    quote: str | None = None
    current: list[str] = []

    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
            continue
        if char in "\"'":
            quote = char
        elif char in "[{(":
            depth += 1
        elif char in "]})":
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)

    parts.append("".join(current))
    return parts


# --- Type coercion ---


def zero_value(target: Any) -> Any:
    """Default for an unmapped parameter of the given type."""
    if target is bool:
        return False
    if target is int:
        return 0
    if target is float:
        return 0.0
    return None


def type_name(target: Any) -> str:
    """Readable name of a type annotation (``int``, ``list[str]``)."""
    if isinstance(target, type) and not get_args(target):
        return target.__name__
    return str(target).replace("typing.", "")


def coerce_to_type(value: Any, target: Any) -> Any:
    """
    Convert a JTree value to the requested type.

    Numeric widening is allowed and numeric strings are parsed as a last
    resort. Booleans are never inferred from truthiness: only True/False,
    "true"/"false" and the numeric values 1/0 convert.

    Raises:
        CoercionError: If no conversion exists
    """
    if target is Any or target is object:
        return value

    origin = get_origin(target)

    if origin is Union or origin is types.UnionType:
        return _coerce_union(value, target)

    if origin is Literal:
        if value in get_args(target):
            return value
        raise CoercionError(value, type_name(target))

    if value is None:
        return zero_value(target)

    if target is bool:
        return _to_bool(value)
    if target is int:
        return _to_int(value)
    if target is float:
        return _to_float(value)
    if target is str:
        return _to_str(value)
    if target is datetime:
        return _to_datetime(value)

    if target in (list, tuple, set) or origin in (list, tuple, set, Sequence):
        return _to_list(value, target)
    if target is dict or origin in (dict, Mapping):
        return _to_dict(value, target)

    if isinstance(target, type) and not issubclass(target, BaseModel) and isinstance(value, target):
        return value

    return _to_structured(value, target)


def _coerce_union(value: Any, target: Any) -> Any:
    args = get_args(target)
    if value is None and type(None) in args:
        return None

    candidates = [arg for arg in args if arg is not type(None)]
    # An exact type match wins before any conversion is attempted
    for candidate in candidates:
        if isinstance(candidate, type) and type(value) is candidate:
            return value

    for candidate in candidates:
        try:
            return coerce_to_type(value, candidate)
        except CoercionError:
            continue
    raise CoercionError(value, type_name(target))


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value == 1:
            return True
        if value == 0:
            return False
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        number = _parse_number(lowered)
        if number == 1:
            return True
        if number == 0:
            return False
    raise CoercionError(value, "bool")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise CoercionError(value, "int", "booleans are not numbers")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        raise CoercionError(value, "int", "value is not integral")
    if isinstance(value, str):
        number = _parse_number(value)
        if number is not None:
            return _to_int(number)
    raise CoercionError(value, "int")


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise CoercionError(value, "float", "booleans are not numbers")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        number = _parse_number(value)
        if number is not None:
            return float(number)
    raise CoercionError(value, "float")


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float, list, dict)):
        return json.dumps(value)
    raise CoercionError(value, "str")


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise CoercionError(value, "datetime", str(e)) from e
    raise CoercionError(value, "datetime")


def _to_list(value: Any, target: Any) -> Any:
    if isinstance(value, str) and value.strip().startswith("["):
        value = parse_literal(value)
    if not isinstance(value, (list, tuple, set)):
        raise CoercionError(value, type_name(target))

    args = get_args(target)
    item_type = args[0] if args else Any
    items = [coerce_to_type(item, item_type) for item in value]

    container = get_origin(target) or target
    if container is tuple:
        return tuple(items)
    if container is set:
        return set(items)
    return items


def _to_dict(value: Any, target: Any) -> dict[str, Any]:
    if isinstance(value, str) and value.strip().startswith("{"):
        value = parse_literal(value)
    if not isinstance(value, Mapping):
        raise CoercionError(value, type_name(target))

    args = get_args(target)
    value_type = args[1] if len(args) == 2 else Any
    return {str(key): coerce_to_type(item, value_type) for key, item in value.items()}


def _to_structured(value: Any, target: Any) -> Any:
    if isinstance(value, str) and value.strip()[:1] in ("{", "["):
        value = parse_literal(value)
    try:
        return TypeAdapter(target).validate_python(value)
    except PydanticValidationError as e:
        raise CoercionError(value, type_name(target), str(e)) from e
    except TypeError as e:
        # TypeAdapter rejects annotations it cannot build a schema for
        raise CoercionError(value, type_name(target), str(e)) from e


def _parse_number(text: str) -> int | float | None:
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
