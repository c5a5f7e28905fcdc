"""String manipulation and parsing."""

from __future__ import annotations

import json
from typing import Any

from ..engine.function_registry import flow_function
from ..engine.jtree import coerce_to_type
from ..core.exceptions import CoercionError


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


@flow_function(name="StringConcat", section="Strings")
def string_concat(input1: str, input2: str) -> str:
    return (input1 or "") + (input2 or "")


@flow_function(name="JoinWith", section="Strings")
def join_with(input1: str, input2: str, separator: str = "") -> str:
    return (input1 or "") + (separator or "") + (input2 or "")


@flow_function(name="JoinArray", section="Strings")
def join_array(items: list[Any], separator: str = ",") -> str:
    """Join array elements; non-string elements are written as JSON."""
    if not items:
        return ""
    return (separator or "").join(_text(item) for item in items)


@flow_function(name="ToUpper", section="Strings")
def to_upper(input: str) -> str:
    return (input or "").upper()


@flow_function(name="ToLower", section="Strings")
def to_lower(input: str) -> str:
    return (input or "").lower()


@flow_function(name="Trim", section="Strings")
def trim(input: str) -> str:
    return (input or "").strip()


@flow_function(name="Length", section="Strings")
def length(input: str) -> int:
    return len(input or "")


@flow_function(name="Contains", section="Strings")
def contains(input: str, value: str, ignore_case: bool = False) -> bool:
    input, value = input or "", value or ""
    if ignore_case:
        return value.casefold() in input.casefold()
    return value in input


@flow_function(name="StartsWith", section="Strings")
def starts_with(input: str, value: str, ignore_case: bool = False) -> bool:
    input, value = input or "", value or ""
    if ignore_case:
        return input.casefold().startswith(value.casefold())
    return input.startswith(value)


@flow_function(name="EndsWith", section="Strings")
def ends_with(input: str, value: str, ignore_case: bool = False) -> bool:
    input, value = input or "", value or ""
    if ignore_case:
        return input.casefold().endswith(value.casefold())
    return input.endswith(value)


@flow_function(name="IndexOf", section="Strings")
def index_of(input: str, value: str) -> int:
    """Position of the first occurrence, -1 when absent."""
    if input is None or value is None:
        return -1
    return input.find(value)


@flow_function(name="Substring", section="Strings")
def substring(input: str, start_index: int, length: int = -1) -> str:
    """
    Slice a string with bounds clamped to the input.

    A negative length takes everything from the start index.
    """
    input = input or ""
    start = max(0, min(start_index, len(input)))
    if length < 0:
        return input[start:]
    return input[start:start + length]


@flow_function(name="Replace", section="Strings")
def replace(input: str, old_value: str, new_value: str) -> str:
    input = input or ""
    if not old_value:
        return input
    return input.replace(old_value, new_value or "")


@flow_function(name="Split", section="Strings")
def split(input: str, separator: str = ",") -> list[str]:
    if not input:
        return []
    return input.split(separator or ",")


# --- Parsing ---


@flow_function(name="ParseInt", section="Strings/Parsing")
def parse_int(text: str, default: int = 0) -> int:
    """Parse an integer, returning the default when the text is not one."""
    try:
        return int((text or "").strip())
    except ValueError:
        return default


@flow_function(name="ParseDouble", section="Strings/Parsing")
def parse_double(text: str, default: float = 0.0) -> float:
    try:
        return float((text or "").strip())
    except ValueError:
        return default


@flow_function(name="ParseBool", section="Strings/Parsing")
def parse_bool(text: str, default: bool = False) -> bool:
    """Accepts true/false (any case) and 1/0."""
    try:
        return coerce_to_type((text or "").strip(), bool)
    except CoercionError:
        return default
