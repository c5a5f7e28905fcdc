"""Integer and floating point arithmetic."""

from __future__ import annotations

import math

from ..engine.function_registry import flow_function


def _truncated_div(numerator: int, denominator: int) -> int:
    # Integer division rounding toward zero
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


# --- Integer ---


@flow_function(name="Add", section="Math")
def add(input1: int, input2: int) -> int:
    return input1 + input2


@flow_function(name="Subtract", section="Math")
def subtract(input1: int, input2: int) -> int:
    return input1 - input2


@flow_function(name="Multiply", section="Math")
def multiply(input1: int, input2: int) -> int:
    return input1 * input2


@flow_function(name="Divide", section="Math")
def divide(numerator: int, denominator: int) -> int:
    """
    Integer division, truncating toward zero.

    Raises:
        ZeroDivisionError: If the denominator is zero
    """
    if denominator == 0:
        raise ZeroDivisionError("Denominator cannot be zero")
    return _truncated_div(numerator, denominator)


@flow_function(name="Modulo", section="Math")
def modulo(numerator: int, denominator: int) -> int:
    """Remainder with the sign of the numerator."""
    if denominator == 0:
        raise ZeroDivisionError("Denominator cannot be zero")
    return numerator - denominator * _truncated_div(numerator, denominator)


@flow_function(name="Min", section="Math")
def min_(input1: int, input2: int) -> int:
    return min(input1, input2)


@flow_function(name="Max", section="Math")
def max_(input1: int, input2: int) -> int:
    return max(input1, input2)


@flow_function(name="Clamp", section="Math")
def clamp(value: int, min_value: int, max_value: int) -> int:
    """Clamp a value into a range; reversed bounds are swapped."""
    if min_value > max_value:
        min_value, max_value = max_value, min_value
    return max(min_value, min(value, max_value))


@flow_function(name="Abs", section="Math")
def abs_(value: int) -> int:
    return abs(value)


# --- Floating point ---


@flow_function(name="AddD", section="Math/Double")
def add_d(input1: float, input2: float) -> float:
    return input1 + input2


@flow_function(name="SubtractD", section="Math/Double")
def subtract_d(input1: float, input2: float) -> float:
    return input1 - input2


@flow_function(name="MultiplyD", section="Math/Double")
def multiply_d(input1: float, input2: float) -> float:
    return input1 * input2


@flow_function(name="DivideD", section="Math/Double")
def divide_d(numerator: float, denominator: float) -> float:
    if denominator == 0:
        raise ZeroDivisionError("Denominator cannot be zero")
    return numerator / denominator


@flow_function(name="Pow", section="Math/Double")
def pow_(base: float, exponent: float) -> float:
    """
    Raise base to a power.

    ``0 ** 0`` is 1.0. A negative base with a fractional exponent gives NaN
    and overflow gives infinity.
    """
    try:
        return math.pow(base, exponent)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


@flow_function(name="Sqrt", section="Math/Double")
def sqrt(value: float) -> float:
    """Square root; NaN for negative values."""
    if value < 0:
        return math.nan
    return math.sqrt(value)


@flow_function(name="ClampD", section="Math/Double")
def clamp_d(value: float, min_value: float, max_value: float) -> float:
    if min_value > max_value:
        min_value, max_value = max_value, min_value
    return max(min_value, min(value, max_value))


@flow_function(name="AbsD", section="Math/Double")
def abs_d(value: float) -> float:
    return abs(value)


@flow_function(name="RoundD", section="Math/Double")
def round_d(value: float, digits: int = 0) -> float:
    """Round half to even."""
    return float(round(value, max(digits, 0)))


@flow_function(name="FloorD", section="Math/Double")
def floor_d(value: float) -> float:
    return float(math.floor(value))


@flow_function(name="CeilingD", section="Math/Double")
def ceiling_d(value: float) -> float:
    return float(math.ceil(value))


@flow_function(name="Lerp", section="Math/Double")
def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation with t clamped to [0, 1]."""
    t = max(0.0, min(t, 1.0))
    return a + (b - a) * t


@flow_function(name="MapRange", section="Math/Double")
def map_range(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    """Map a value from one range onto another; a zero-width input range gives out_min."""
    span = in_max - in_min
    if abs(span) < 1e-12:
        return out_min
    return out_min + (value - in_min) * (out_max - out_min) / span
