"""
Common helpers for the arbitrage bot.

Logging setup, Decimal coercion, token unit conversion and swap deadlines.
"""

import logging
import time
from decimal import ROUND_DOWN, Decimal
from typing import Optional, Union

Number = Union[int, float, str, Decimal]


# Timestamp utilities
def get_current_timestamp() -> float:
    """Get current Unix timestamp as float."""
    return time.time()


def swap_deadline(minutes: int, now: Optional[float] = None) -> int:
    """
    Router deadline as Unix seconds, `minutes` from now.

    Args:
        minutes: Minutes until the swap expires
        now: Override for the current timestamp (tests)

    Returns:
        Deadline in whole seconds
    """
    if now is None:
        now = get_current_timestamp()
    return int(now) + minutes * 60


# Decimal utilities
def d(value: Number) -> Decimal:
    """Coerce a number to Decimal, going through str() for floats."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_units(raw: int, decimals: int) -> Decimal:
    """Convert a raw on-chain integer amount to token units."""
    return Decimal(raw) / (Decimal(10) ** decimals)


def to_raw(amount: Number, decimals: int) -> int:
    """Convert token units to a raw on-chain integer, truncating dust."""
    scaled = d(amount) * (Decimal(10) ** decimals)
    return int(scaled.quantize(Decimal(1), rounding=ROUND_DOWN))


# Logging utilities
def get_logger(name: str, level: Union[str, int] = logging.INFO) -> logging.Logger:
    """
    Get a logger with the bot's structured format.

    A stderr handler is attached the first time a logger is requested so
    modules log sensibly even when imported as a library; the CLI replaces
    these with a single root handler (see logging_config.setup).

    Args:
        name: Logger name (typically __name__)
        level: Logging level, applied only if the logger has none yet

    Returns:
        Logger emitting "time | level | name:line | message"
    """
    logger = logging.getLogger(name)

    if logger.level == logging.NOTSET:
        logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
