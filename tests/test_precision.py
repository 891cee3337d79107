"""
Tests for numeric precision utilities and logging setup.
"""

import logging
import random
from collections.abc import Iterator
from pathlib import Path

import pytest

from roof_compliance.utils import (
    format_currency,
    format_measurement,
    format_number,
    format_variance,
    round_to_precision,
    safe_add,
    safe_multiply,
    safe_subtract,
    setup_logging,
)

_rng = random.Random(20240917)
FLOAT_PAIRS = [
    (_rng.uniform(-scale, scale), _rng.uniform(-scale, scale))
    for scale in (1, 100, 10_000, 1_000_000)
    for _ in range(50)
]


class TestArithmetic:
    """Tests for rounded arithmetic helpers."""

    def test_removes_float_artifacts(self) -> None:
        """Test that accumulated float error is rounded away."""
        assert round_to_precision(13.680000000000007) == 13.68
        assert safe_add(0.1, 0.2) == 0.3

    def test_half_rounds_up(self) -> None:
        assert round_to_precision(2.5, 0) == 3.0

    def test_ridge_cap_cost(self) -> None:
        """Test the cost of a 113 LF shortage at $42.90/LF."""
        assert safe_multiply(113, 42.9) == 4847.7

    def test_subtract(self) -> None:
        assert safe_subtract(6, 119) == -113
        assert safe_subtract(113.99, 119) == -5.01
        assert safe_subtract(114, 119) == -5.0

    def test_custom_decimals(self) -> None:
        assert safe_multiply(1.118, 1.05, decimals=4) == 1.1739

    @pytest.mark.parametrize("a, b", FLOAT_PAIRS)
    def test_add_then_subtract_round_trips(self, a: float, b: float) -> None:
        assert safe_subtract(safe_add(a, b), b) == pytest.approx(a, abs=0.01)


class TestFormatting:
    """Tests for display formatting."""

    def test_format_number_strips_zeros(self) -> None:
        assert format_number(119.0) == "119"
        assert format_number(13.680000000000007) == "13.68"
        assert format_number(42.9) == "42.9"

    def test_format_number_keeps_zeros(self) -> None:
        assert format_number(5, strip_trailing_zeros=False) == "5.00"

    def test_format_number_negative_zero(self) -> None:
        assert format_number(-0.001) == "0"

    def test_format_measurement(self) -> None:
        assert format_measurement(13.680000000000007, "LF") == "13.68 LF"

    def test_format_currency(self) -> None:
        assert format_currency(4847.7) == "$4847.7"

    def test_format_variance_signs(self) -> None:
        assert format_variance(6, "LF") == "+6 LF"
        assert format_variance(-113, "LF") == "-113 LF"
        assert format_variance(0, "SF") == "+0 SF"


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for logging configuration."""

    def test_console_only(self, restore_root_logger: logging.Logger) -> None:
        root = setup_logging("DEBUG")

        assert root is restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_file_handler(self, restore_root_logger: logging.Logger, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "engine.log"
        root = setup_logging("warning", log_file=str(log_file))

        assert root.level == logging.WARNING
        assert len(root.handlers) == 2
        assert log_file.parent.is_dir()

    def test_unknown_level_defaults_to_info(
        self, restore_root_logger: logging.Logger
    ) -> None:
        root = setup_logging("chatty")
        assert root.level == logging.INFO
