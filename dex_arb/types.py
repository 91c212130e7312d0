"""
Core data types for the pool self-trade arbitrage engine.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from .exceptions import MissingMarketDataError
from .utils import to_raw, to_units

WEI_PER_NATIVE = Decimal(10) ** 18


@dataclass(frozen=True)
class Token:
    """
    An ERC20 token as configured for the bot.

    Attributes:
        symbol: Token symbol (e.g., "USDC")
        address: Checksum address of the token contract
        decimals: Decimal precision used to scale raw on-chain amounts
    """

    symbol: str
    address: str
    decimals: int

    def to_units(self, raw: int) -> Decimal:
        """Raw integer amount -> token units."""
        return to_units(raw, self.decimals)

    def to_raw(self, amount: Decimal) -> int:
        """Token units -> raw integer amount (truncated)."""
        return to_raw(amount, self.decimals)


@dataclass
class Pool:
    """
    A constant-product liquidity pool with normalized reserves.

    Reserves stay None until the first Sync event ("cold" pool) and are only
    written by update_reserves().

    Attributes:
        name: Human-readable pool name (e.g., "[MIM/USDT.e]-[TRADER JOE]")
        address: Checksum address of the pair contract
        token0: Token at index 0 of the pair
        token1: Token at index 1 of the pair
        fee: Per-side swap fee as decimal (e.g., 0.003 for 30 bps)
        reserve0: Reserve of token0 in token units
        reserve1: Reserve of token1 in token units
    """

    name: str
    address: str
    token0: Token
    token1: Token
    fee: Decimal = Decimal("0.003")
    reserve0: Optional[Decimal] = None
    reserve1: Optional[Decimal] = None

    @property
    def is_cold(self) -> bool:
        return self.reserve0 is None or self.reserve1 is None

    def update_reserves(self, raw_reserve0: int, raw_reserve1: int) -> None:
        """Overwrite reserves from raw Sync event values."""
        if raw_reserve0 < 0 or raw_reserve1 < 0:
            raise ValueError(
                f"Reserves must be non-negative: r0={raw_reserve0}, r1={raw_reserve1}"
            )
        self.reserve0 = self.token0.to_units(raw_reserve0)
        self.reserve1 = self.token1.to_units(raw_reserve1)


@dataclass(frozen=True)
class MarketConditions:
    """
    Snapshot of network-wide inputs for fee bidding.

    None means "not yet known" and is distinct from zero. Snapshots are
    immutable; the refresher swaps in a whole new instance.

    Attributes:
        native_price_usd: Native token (AVAX) price in USD
        base_fee_wei: Network base fee in wei
        gas_estimate: Gas units for a representative swap
    """

    native_price_usd: Optional[Decimal] = None
    base_fee_wei: Optional[int] = None
    gas_estimate: Optional[int] = None

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(
            name
            for name in ("native_price_usd", "base_fee_wei", "gas_estimate")
            if getattr(self, name) is None
        )

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()

    def require_complete(self) -> "MarketConditions":
        """Return self, or raise MissingMarketDataError naming unknown fields."""
        missing = self.missing_fields()
        if missing:
            raise MissingMarketDataError(missing)
        return self

    @property
    def price_of_gas_unit_usd(self) -> Optional[Decimal]:
        """USD price of one wei of gas spend."""
        if self.native_price_usd is None:
            return None
        return self.native_price_usd / WEI_PER_NATIVE


class Direction(Enum):
    """Which pool token goes in."""

    TOKEN0_TO_TOKEN1 = "0->1"
    TOKEN1_TO_TOKEN0 = "1->0"


@dataclass(frozen=True)
class SwapOpportunity:
    """
    A sized and priced counter-trade, computed fresh for one event.

    Attributes:
        pool_name: Pool the opportunity was found on
        direction: Trade direction
        token_in: Token sold
        token_out: Token bought
        amount_in: Sized input in token_in units
        amount_out: Quoted output in token_out units
        expected_value_usd: Approximate USD value extracted
        priority_fee_wei: Tip bid per gas unit (never negative)
    """

    pool_name: str
    direction: Direction
    token_in: Token
    token_out: Token
    amount_in: Decimal
    amount_out: Decimal
    expected_value_usd: Decimal
    priority_fee_wei: int = 0

    def raw_amount_in(self) -> int:
        return self.token_in.to_raw(self.amount_in)

    def raw_amount_out(self) -> int:
        return self.token_out.to_raw(self.amount_out)

    def format_log(self) -> str:
        return (
            f"{self.pool_name} {self.direction.value}: "
            f"in {self.amount_in:.4f} {self.token_in.symbol} -> "
            f"out {self.amount_out:.4f} {self.token_out.symbol} "
            f"| EV ${self.expected_value_usd:.4f} | tip {self.priority_fee_wei} wei"
        )


@dataclass
class ExecutionResult:
    """
    Result of an execution attempt.

    Attributes:
        opportunity: The opportunity that was acted on
        success: Whether the swap was confirmed
        tx_hash: Transaction hash (if submitted)
        suppressed: True if skipped because a submission was already in flight
        error: Error message (if failed)
        execution_time_ms: Time from submission to outcome
    """

    opportunity: SwapOpportunity
    success: bool
    tx_hash: Optional[str] = None
    suppressed: bool = False
    error: Optional[str] = None
    execution_time_ms: Optional[float] = None
