"""
Value comparison.

Inputs arrive as JSON values of any kind, so comparisons go through a
tagged view of each operand and a fixed ladder: numbers compare
numerically, numeric strings compare as numbers, ISO dates compare as
dates and any other pair of strings compares lexically (ordinal).
Incomparable pairs make the ordering functions return False.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from ..core.exceptions import CoercionError
from ..engine.function_registry import flow_function

logger = logging.getLogger(__name__)


class ValueTag(str, Enum):
    """Kinds of JSON value."""

    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    DATE = "date"
    ARRAY = "array"
    MAP = "map"


@dataclass(frozen=True)
class TaggedValue:
    """A JSON value paired with its kind."""

    tag: ValueTag
    value: Any

    @classmethod
    def of(cls, value: Any) -> TaggedValue:
        if value is None:
            return cls(ValueTag.NULL, None)
        if isinstance(value, bool):
            return cls(ValueTag.BOOL, value)
        if isinstance(value, (int, float)):
            return cls(ValueTag.NUMBER, value)
        if isinstance(value, datetime):
            return cls(ValueTag.DATE, value)
        if isinstance(value, date):
            return cls(ValueTag.DATE, datetime(value.year, value.month, value.day))
        if isinstance(value, str):
            return cls(ValueTag.STRING, value)
        if isinstance(value, (list, tuple)):
            return cls(ValueTag.ARRAY, list(value))
        if isinstance(value, dict):
            return cls(ValueTag.MAP, value)
        raise CoercionError(value, "comparable value")

    def as_number(self) -> float | None:
        if self.tag is ValueTag.NUMBER:
            return self.value
        if self.tag is ValueTag.STRING:
            try:
                number = float(self.value.strip())
            except ValueError:
                return None
            return number if math.isfinite(number) else None
        return None

    def as_date(self) -> datetime | None:
        if self.tag is ValueTag.DATE:
            return self.value
        if self.tag is ValueTag.STRING:
            try:
                return datetime.fromisoformat(self.value.strip().replace("Z", "+00:00"))
            except ValueError:
                return None
        return None


def _sign(difference: float) -> int:
    return (difference > 0) - (difference < 0)


def compare_values(left: Any, right: Any) -> int:
    """
    Three-way comparison of two JSON values.

    Returns a negative number, zero or a positive number.

    Raises:
        CoercionError: If the values have no ordering
    """
    a, b = TaggedValue.of(left), TaggedValue.of(right)

    if a.tag is ValueTag.BOOL and b.tag is ValueTag.BOOL:
        return int(a.value) - int(b.value)

    numbers = a.as_number(), b.as_number()
    if numbers[0] is not None and numbers[1] is not None:
        return _sign(numbers[0] - numbers[1])

    dates = a.as_date(), b.as_date()
    if dates[0] is not None and dates[1] is not None:
        try:
            return _sign((dates[0] - dates[1]).total_seconds())
        except TypeError as e:
            # Naive and aware datetimes do not mix
            raise CoercionError(right, a.tag.value, str(e)) from e

    if a.tag is ValueTag.STRING and b.tag is ValueTag.STRING:
        return (a.value > b.value) - (a.value < b.value)

    raise CoercionError(right, a.tag.value, f"cannot compare {a.tag.value} with {b.tag.value}")


def values_equal(left: Any, right: Any) -> bool:
    """
    Equality under the comparison ladder.

    Arrays and maps are equal when structurally equal; null only equals null.
    Values of kinds with no ordering between them are simply unequal.
    """
    a, b = TaggedValue.of(left), TaggedValue.of(right)

    if a.tag is ValueTag.NULL or b.tag is ValueTag.NULL:
        return a.tag is b.tag
    if a.tag in (ValueTag.ARRAY, ValueTag.MAP) or b.tag in (ValueTag.ARRAY, ValueTag.MAP):
        return a.tag is b.tag and a.value == b.value

    try:
        return compare_values(left, right) == 0
    except CoercionError:
        return False


def _ordered(left: Any, right: Any, predicate: str) -> bool:
    try:
        result = compare_values(left, right)
    except CoercionError as e:
        logger.debug("%s: %s", predicate, e.message)
        return False

    if predicate == "gt":
        return result > 0
    if predicate == "ge":
        return result >= 0
    if predicate == "lt":
        return result < 0
    return result <= 0


@flow_function(name="Equal", section="Comparison")
def equal(a: Any, b: Any) -> bool:
    try:
        return values_equal(a, b)
    except CoercionError as e:
        logger.debug("Equal: %s", e.message)
        return False


@flow_function(name="NotEqual", section="Comparison")
def not_equal(a: Any, b: Any) -> bool:
    try:
        return not values_equal(a, b)
    except CoercionError as e:
        logger.debug("NotEqual: %s", e.message)
        return False


@flow_function(name="GreaterThan", section="Comparison")
def greater_than(a: Any, b: Any) -> bool:
    return _ordered(a, b, "gt")


@flow_function(name="GreaterOrEqual", section="Comparison")
def greater_or_equal(a: Any, b: Any) -> bool:
    return _ordered(a, b, "ge")


@flow_function(name="LessThan", section="Comparison")
def less_than(a: Any, b: Any) -> bool:
    return _ordered(a, b, "lt")


@flow_function(name="LessOrEqual", section="Comparison")
def less_or_equal(a: Any, b: Any) -> bool:
    return _ordered(a, b, "le")


@flow_function(name="EqualD", section="Comparison")
def equal_d(a: float, b: float, tolerance: float = 0.0) -> bool:
    """Equal within an absolute tolerance."""
    return abs(a - b) <= abs(tolerance)


@flow_function(name="StringEquals", section="Comparison")
def string_equals(a: str, b: str, ignore_case: bool = False) -> bool:
    a, b = a or "", b or ""
    if ignore_case:
        return a.casefold() == b.casefold()
    return a == b
