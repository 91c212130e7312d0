"""Tests for dex_arb/utils.py."""

import io
import logging
from decimal import Decimal

from dex_arb.utils import d, get_logger, swap_deadline, to_raw, to_units


def test_swap_deadline_is_unix_seconds():
    """Deadline is whole seconds, `minutes` after now."""
    assert swap_deadline(30, now=1_700_000_000.9) == 1_700_000_000 + 1_800


def test_swap_deadline_defaults_to_now():
    deadline = swap_deadline(30)
    # Seconds, not milliseconds
    assert 1_600_000_000 < deadline < 10_000_000_000


def test_d_goes_through_str_for_floats():
    assert d(0.1) == Decimal("0.1")
    assert d(100e-18) == Decimal("1E-16")
    assert d(Decimal("2.5")) == Decimal("2.5")
    assert d(7) == Decimal(7)


def test_unit_conversion():
    assert to_units(123_456_789, 6) == Decimal("123.456789")
    assert to_raw(Decimal("123.4567899"), 6) == 123_456_789
    assert to_raw("0.0000001", 6) == 0


def test_get_logger_basic():
    """Test basic get_logger functionality."""
    logger = get_logger(__name__)
    assert isinstance(logger, logging.Logger)
    assert logger.name == __name__


def test_get_logger_with_level():
    logger = get_logger(__name__ + ".debug", level=logging.DEBUG)
    assert logger.level == logging.DEBUG


def test_get_logger_no_duplicate_handlers():
    """Test that get_logger doesn't add duplicate handlers."""
    logger_name = __name__ + ".dupes"

    logger1 = get_logger(logger_name)
    handler_count = len(logger1.handlers)
    logger2 = get_logger(logger_name)

    assert logger1 is logger2
    assert len(logger2.handlers) == handler_count == 1


def test_get_logger_structured_format():
    """Test that get_logger produces structured log format."""
    logger_name = __name__ + ".format"
    logger = get_logger(logger_name)

    captured_output = io.StringIO()
    original_stream = logger.handlers[0].stream
    logger.handlers[0].stream = captured_output
    try:
        logger.info("Pool: test")
    finally:
        logger.handlers[0].stream = original_stream

    log_output = captured_output.getvalue()
    assert "INFO" in log_output
    assert logger_name in log_output
    assert "Pool: test" in log_output
    assert "|" in log_output
