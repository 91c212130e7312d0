"""
Exception hierarchy for the DEX self-trade arbitrage bot.

Provides specific exception types for different error categories so callers
can decide what is fatal (configuration, programming errors) and what is
recovered locally (missing market data, failed chain calls).
"""

from typing import Any, Dict, Iterable, Optional


class ArbitrageError(Exception):
    """Base exception for all arbitrage bot errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigError(ArbitrageError):
    """Raised when config is invalid or missing required fields."""

    pass


class InvalidArgumentsError(ArbitrageError):
    """
    Raised when a pricing call receives mutually exclusive arguments.

    Signals a programming error upstream, never a market condition.
    """

    def __init__(
        self,
        message: str,
        function: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.function = function


class MissingMarketDataError(ArbitrageError):
    """Raised when the market conditions snapshot has unknown fields."""

    def __init__(
        self,
        missing: Iterable[str],
        details: Optional[Dict[str, Any]] = None,
    ):
        self.missing = tuple(missing)
        super().__init__(
            f"Market data not available: {', '.join(self.missing)}", details
        )


class ExternalCallError(ArbitrageError):
    """Raised when a read, submission or confirmation call to the chain fails."""

    def __init__(
        self,
        message: str,
        call: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.call = call
