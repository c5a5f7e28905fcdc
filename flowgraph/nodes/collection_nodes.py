"""
List functions for string and number collections.

Every function treats a missing collection as empty and returns a new
list rather than changing its input.
"""

from __future__ import annotations

from ..engine.function_registry import flow_function


def _require_items(collection: list | None) -> list:
    if not collection:
        raise ValueError("Collection is empty")
    return collection


def _at(collection: list | None, index: int):
    items = collection or []
    if index < 0 or index >= len(items):
        raise IndexError(f"Index {index} is out of range for a collection of {len(items)}")
    return items[index]


# --- Building ---


@flow_function(name="CountStrings", section="Collections")
def count_strings(collection: list[str]) -> int:
    return len(collection or [])


@flow_function(name="CountNumbers", section="Collections")
def count_numbers(collection: list[int]) -> int:
    return len(collection or [])


@flow_function(name="CreateStringList", section="Collections")
def create_string_list(item1: str, item2: str, item3: str) -> list[str]:
    return [item1, item2, item3]


@flow_function(name="CreateNumberList", section="Collections")
def create_number_list(item1: int, item2: int, item3: int) -> list[int]:
    return [item1, item2, item3]


@flow_function(name="AddString", section="Collections")
def add_string(collection: list[str], item: str) -> list[str]:
    return [*(collection or []), item]


@flow_function(name="AddNumber", section="Collections")
def add_number(collection: list[int], item: int) -> list[int]:
    return [*(collection or []), item]


@flow_function(name="ConcatStrings", section="Collections")
def concat_strings(first: list[str], second: list[str]) -> list[str]:
    return [*(first or []), *(second or [])]


@flow_function(name="ConcatNumbers", section="Collections")
def concat_numbers(first: list[int], second: list[int]) -> list[int]:
    return [*(first or []), *(second or [])]


@flow_function(name="Range", section="Collections")
def range_(start: int, count: int) -> list[int]:
    """``count`` consecutive numbers from ``start``."""
    if count < 0:
        raise ValueError("Count must be non-negative")
    return list(range(start, start + count))


@flow_function(name="RangeBetween", section="Collections")
def range_between(start: int, end: int) -> list[int]:
    """Numbers from ``start`` to ``end``, both included."""
    if end < start:
        raise ValueError("End must be greater than or equal to start")
    return list(range(start, end + 1))


# --- Access ---


@flow_function(name="GetStringAtIndex", section="Collections")
def get_string_at_index(collection: list[str], index: int) -> str:
    """
    Read one element.

    Raises:
        IndexError: If the index is outside the collection
    """
    return _at(collection, index)


@flow_function(name="GetNumberAtIndex", section="Collections")
def get_number_at_index(collection: list[int], index: int) -> int:
    return _at(collection, index)


@flow_function(name="FirstString", section="Collections")
def first_string(collection: list[str]) -> str:
    return _require_items(collection)[0]


@flow_function(name="FirstNumber", section="Collections")
def first_number(collection: list[int]) -> int:
    return _require_items(collection)[0]


@flow_function(name="LastString", section="Collections")
def last_string(collection: list[str]) -> str:
    return _require_items(collection)[-1]


@flow_function(name="LastNumber", section="Collections")
def last_number(collection: list[int]) -> int:
    return _require_items(collection)[-1]


@flow_function(name="ContainsString", section="Collections")
def contains_string(collection: list[str], value: str) -> bool:
    return value in (collection or [])


@flow_function(name="ContainsNumber", section="Collections")
def contains_number(collection: list[int], value: int) -> bool:
    return value in (collection or [])


@flow_function(name="IndexOfString", section="Collections")
def index_of_string(collection: list[str], value: str) -> int:
    """Position of the first match, -1 when absent."""
    items = collection or []
    return items.index(value) if value in items else -1


@flow_function(name="IndexOfNumber", section="Collections")
def index_of_number(collection: list[int], value: int) -> int:
    items = collection or []
    return items.index(value) if value in items else -1


@flow_function(name="IsEmpty", section="Collections")
def is_empty(collection: list[str]) -> bool:
    return not collection


@flow_function(name="IsEmptyNumbers", section="Collections")
def is_empty_numbers(collection: list[int]) -> bool:
    return not collection


# --- Filtering ---


@flow_function(name="FilterGreaterThan", section="Collections/Filter")
def filter_greater_than(collection: list[int], threshold: int) -> list[int]:
    return [x for x in collection or [] if x > threshold]


@flow_function(name="FilterLessThan", section="Collections/Filter")
def filter_less_than(collection: list[int], threshold: int) -> list[int]:
    return [x for x in collection or [] if x < threshold]


@flow_function(name="FilterContains", section="Collections/Filter")
def filter_contains(collection: list[str], substring: str) -> list[str]:
    """Strings containing ``substring``, ignoring case."""
    needle = (substring or "").casefold()
    return [s for s in collection or [] if s is not None and needle in s.casefold()]


@flow_function(name="FilterNotEmpty", section="Collections/Filter")
def filter_not_empty(collection: list[str]) -> list[str]:
    """Drop missing and whitespace-only strings."""
    return [s for s in collection or [] if s and s.strip()]


@flow_function(name="FilterEquals", section="Collections/Filter")
def filter_equals(collection: list[str], value: str) -> list[str]:
    return [s for s in collection or [] if s == value]


@flow_function(name="FilterEqualsNumber", section="Collections/Filter")
def filter_equals_number(collection: list[int], value: int) -> list[int]:
    return [x for x in collection or [] if x == value]


# --- Reshaping ---


@flow_function(name="ReverseStrings", section="Collections/Transform")
def reverse_strings(collection: list[str]) -> list[str]:
    return list(reversed(collection or []))


@flow_function(name="ReverseNumbers", section="Collections/Transform")
def reverse_numbers(collection: list[int]) -> list[int]:
    return list(reversed(collection or []))


@flow_function(name="TakeStrings", section="Collections/Transform")
def take_strings(collection: list[str], count: int) -> list[str]:
    return (collection or [])[: max(count, 0)]


@flow_function(name="TakeNumbers", section="Collections/Transform")
def take_numbers(collection: list[int], count: int) -> list[int]:
    return (collection or [])[: max(count, 0)]


@flow_function(name="SkipStrings", section="Collections/Transform")
def skip_strings(collection: list[str], count: int) -> list[str]:
    return (collection or [])[max(count, 0) :]


@flow_function(name="SkipNumbers", section="Collections/Transform")
def skip_numbers(collection: list[int], count: int) -> list[int]:
    return (collection or [])[max(count, 0) :]


@flow_function(name="DistinctStrings", section="Collections/Transform")
def distinct_strings(collection: list[str]) -> list[str]:
    """Drop repeats, keeping the first occurrence of each string."""
    return list(dict.fromkeys(collection or []))


@flow_function(name="DistinctNumbers", section="Collections/Transform")
def distinct_numbers(collection: list[int]) -> list[int]:
    return list(dict.fromkeys(collection or []))


@flow_function(name="SortStrings", section="Collections/Transform")
def sort_strings(collection: list[str]) -> list[str]:
    return sorted(collection or [])


@flow_function(name="SortStringsDescending", section="Collections/Transform")
def sort_strings_descending(collection: list[str]) -> list[str]:
    return sorted(collection or [], reverse=True)


@flow_function(name="SortNumbers", section="Collections/Transform")
def sort_numbers(collection: list[int]) -> list[int]:
    return sorted(collection or [])


@flow_function(name="SortNumbersDescending", section="Collections/Transform")
def sort_numbers_descending(collection: list[int]) -> list[int]:
    return sorted(collection or [], reverse=True)


# --- Element-wise ---


@flow_function(name="MultiplyAll", section="Collections/Transform")
def multiply_all(collection: list[int], multiplier: int) -> list[int]:
    return [x * multiplier for x in collection or []]


@flow_function(name="PrefixAll", section="Collections/Transform")
def prefix_all(collection: list[str], prefix: str) -> list[str]:
    return [(prefix or "") + (s or "") for s in collection or []]


@flow_function(name="SuffixAll", section="Collections/Transform")
def suffix_all(collection: list[str], suffix: str) -> list[str]:
    return [(s or "") + (suffix or "") for s in collection or []]


@flow_function(name="MapNumbersToString", section="Collections/Transform")
def map_numbers_to_string(collection: list[int]) -> list[str]:
    return [str(x) for x in collection or []]


@flow_function(name="MapToLength", section="Collections/Transform")
def map_to_length(collection: list[str]) -> list[int]:
    return [len(s or "") for s in collection or []]


@flow_function(name="MapToUpperCase", section="Collections/Transform")
def map_to_upper_case(collection: list[str]) -> list[str]:
    return [(s or "").upper() for s in collection or []]


@flow_function(name="MapToLowerCase", section="Collections/Transform")
def map_to_lower_case(collection: list[str]) -> list[str]:
    return [(s or "").lower() for s in collection or []]
