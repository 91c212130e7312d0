"""
Priority fee bidding for EIP-1559 style fee markets.

Only applicable to networks with a base fee plus tip (e.g. Ethereum,
Avalanche C-Chain), not to legacy gas price markets.
"""

from decimal import ROUND_FLOOR, getcontext

from .exceptions import InvalidArgumentsError
from .utils import Number, d

getcontext().prec = 50

# Share of expected value the engine is willing to spend on the tip
DEFAULT_FEE_RATIO = 0.1


def scaled_priority_fee(
    base_fee: Number,
    expected_value_usd: Number,
    gas_limit: Number,
    price_of_gas_unit_usd: Number,
    fee_ratio: Number,
) -> int:
    """
    Compute a priority fee that spends `fee_ratio` of the swap EV on gas.

    bid = floor(EV * fee_ratio / (gas_limit * price_of_gas_unit_usd)) - base_fee

    Example:
        >>> scaled_priority_fee(25000000000, 100, 125000, 100e-18, 0.10)
        775000000000

    For $100 of EV, a 10% fee ratio, $100 native token and a 125,000 gas
    swap, $10 of gas buys 800 gwei per unit; 775 gwei is left as tip once
    the 25 gwei base fee is paid.

    Args:
        base_fee: Network base fee in wei
        expected_value_usd: Expected value of the swap in USD
        gas_limit: Gas units the swap consumes
        price_of_gas_unit_usd: USD price of one wei (native price / 1e18)
        fee_ratio: Total gas spend / profit

    Returns:
        Bid in wei. Negative means the EV cannot even cover the base fee;
        callers must check the sign before submitting.

    Raises:
        InvalidArgumentsError: If gas_limit or price_of_gas_unit_usd is zero
    """
    gas_cost_per_wei = d(gas_limit) * d(price_of_gas_unit_usd)
    if gas_cost_per_wei == 0:
        raise InvalidArgumentsError(
            "scaled_priority_fee() failure: gas_limit and price_of_gas_unit_usd must be non-zero",
            function="scaled_priority_fee",
        )

    budget = d(expected_value_usd) * d(fee_ratio) / gas_cost_per_wei
    return int(budget.to_integral_value(rounding=ROUND_FLOOR)) - int(d(base_fee))


def priority_fee_tip(bid: int) -> int:
    """Tip actually offered for a bid: negative bids fall back to zero."""
    return max(bid, 0)
