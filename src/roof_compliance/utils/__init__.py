"""
Utility modules for the Roof Compliance Engine.
"""

from .logging import setup_logging
from .precision import (
    format_currency,
    format_measurement,
    format_number,
    format_variance,
    round_to_precision,
    safe_add,
    safe_multiply,
    safe_subtract,
)

__all__ = [
    "format_currency",
    "format_measurement",
    "format_number",
    "format_variance",
    "round_to_precision",
    "safe_add",
    "safe_multiply",
    "safe_subtract",
    "setup_logging",
]
