"""
Constant-product pool self-trade arbitrage bot.

Watches Sync events on Uniswap V2 style pools, sizes a counter-trade from the
new reserves, bids a priority fee proportional to expected value and submits
the swap when it clears the profit target.
"""

PROJECT_NAME = "dex-arb"
VERSION = "0.1.0"

# Export main components for easier imports
from dex_arb.config import ArbConfig, load_config
from dex_arb.engine import ArbitrageDecisionEngine
from dex_arb.exceptions import (
    ArbitrageError,
    ConfigError,
    ExternalCallError,
    InvalidArgumentsError,
    MissingMarketDataError,
)
from dex_arb.fees import priority_fee_tip, scaled_priority_fee
from dex_arb.market import MarketConditionsRefresher
from dex_arb.pricing import quote_output_for_input, size_input_for_target_ratio
from dex_arb.types import (
    Direction,
    ExecutionResult,
    MarketConditions,
    Pool,
    SwapOpportunity,
    Token,
)

__all__ = [
    "PROJECT_NAME",
    "VERSION",
    "ArbConfig",
    "load_config",
    "ArbitrageDecisionEngine",
    "ArbitrageError",
    "ConfigError",
    "ExternalCallError",
    "InvalidArgumentsError",
    "MissingMarketDataError",
    "priority_fee_tip",
    "scaled_priority_fee",
    "MarketConditionsRefresher",
    "quote_output_for_input",
    "size_input_for_target_ratio",
    "Direction",
    "ExecutionResult",
    "MarketConditions",
    "Pool",
    "SwapOpportunity",
    "Token",
]
