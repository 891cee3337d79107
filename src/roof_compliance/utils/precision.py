"""
Numeric precision utilities for cost and measurement calculations.
Keeps float arithmetic from leaking artifacts like 13.680000000000007 into
variance amounts, cost impacts and report text.
"""

import math
import sys

EPSILON = sys.float_info.epsilon


def round_to_precision(value: float, decimals: int = 2) -> float:
    """
    Round a value to a fixed number of decimal places.

    Halves round upward (toward positive infinity), and a machine-epsilon
    bias is added before scaling so that values such as 1.005 round the way
    a person would expect.

    Args:
        value: Number to round
        decimals: Decimal places to keep (default: 2)

    Returns:
        Rounded value
    """
    factor = 10**decimals
    return math.floor((value + EPSILON) * factor + 0.5) / factor


def safe_add(a: float, b: float, decimals: int = 2) -> float:
    """Add two numbers and round the sum."""
    return round_to_precision(a + b, decimals)


def safe_subtract(a: float, b: float, decimals: int = 2) -> float:
    """Subtract b from a and round the difference."""
    return round_to_precision(a - b, decimals)


def safe_multiply(a: float, b: float, decimals: int = 2) -> float:
    """Multiply two numbers and round the product."""
    return round_to_precision(a * b, decimals)


def format_number(
    value: float, decimals: int = 2, strip_trailing_zeros: bool = True
) -> str:
    """
    Format a number for display.

    Args:
        value: Number to format
        decimals: Decimal places (default: 2)
        strip_trailing_zeros: Drop trailing zeros and a dangling point

    Returns:
        Display string, e.g. "13.68" or "119"
    """
    formatted = f"{value:.{decimals}f}"
    if not strip_trailing_zeros or "." not in formatted:
        return formatted

    formatted = formatted.rstrip("0").rstrip(".")
    if formatted == "-0":
        return "0"
    return formatted


def format_measurement(value: float, unit: str, decimals: int = 2) -> str:
    """Format a measurement, e.g. "13.68 LF"."""
    return f"{format_number(value, decimals)} {unit}"


def format_currency(value: float, decimals: int = 2) -> str:
    """Format a dollar amount, e.g. "$4847.7"."""
    return f"${format_number(value, decimals)}"


def format_variance(value: float, unit: str, decimals: int = 2) -> str:
    """Format a signed variance, e.g. "+6 LF" or "-113 LF"."""
    sign = "+" if value >= 0 else ""
    return f"{sign}{format_number(value, decimals)} {unit}"
