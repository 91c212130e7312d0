"""
Constant-product pricing for two-token self-trades.

Both functions work on reserves already normalized by token decimals and
return Decimal amounts in token units.

Formulas are kept exactly as the profit thresholds were tuned against them:
- sizing uses the configured USD swap size as its "target ratio"
- quoting applies the fee twice (inside the numerator and as an outer factor)
"""

from decimal import ROUND_FLOOR, Decimal, getcontext

from .exceptions import InvalidArgumentsError
from .utils import Number, d

getcontext().prec = 50

ZERO = Decimal(0)
ONE = Decimal(1)


def size_input_for_target_ratio(
    reserve0: Number,
    reserve1: Number,
    target_ratio: Number,
    output_is_token0: bool = False,
    output_is_token1: bool = False,
    fee_rate: Number = 0,
) -> Decimal:
    """
    Size the counter-trade input needed to move the pool to a target ratio.

    token0 out (token1 in):  dy = reserve0 / C - reserve1 / (1 - fee)
    token1 out (token0 in):  dx = reserve1 * C - reserve0 / (1 - fee)

    Args:
        reserve0: Pool reserve of token0
        reserve1: Pool reserve of token1
        target_ratio: Ratio constant C (callers pass the USD swap size)
        output_is_token0: Solve for token0 output
        output_is_token1: Solve for token1 output
        fee_rate: Per-side fee as decimal

    Returns:
        Input amount, or 0 when the pool already satisfies the target

    Raises:
        InvalidArgumentsError: If both output flags are set
    """
    if output_is_token0 and output_is_token1:
        raise InvalidArgumentsError(
            "size_input_for_target_ratio() failure: both token0 and token1 output requested",
            function="size_input_for_target_ratio",
        )

    r0 = d(reserve0)
    r1 = d(reserve1)
    ratio = d(target_ratio)
    fee_discount = ONE - d(fee_rate)

    if output_is_token0:
        amount = r0 / ratio - r1 / fee_discount
    elif output_is_token1:
        amount = r1 * ratio - r0 / fee_discount
    else:
        return ZERO

    return amount if amount > 0 else ZERO


def quote_output_for_input(
    reserve0: Number,
    reserve1: Number,
    amount_in_token0: Number = 0,
    amount_in_token1: Number = 0,
    fee_rate: Number = 0,
) -> Decimal:
    """
    Quote the pool output for an input, from reserves alone.

    out = floor(r_out * a * (1 - fee) / (r_in + a) * (1 - fee))

    Zero means "not provided", so exactly one input may be non-zero.

    Args:
        reserve0: Pool reserve of token0
        reserve1: Pool reserve of token1
        amount_in_token0: Amount of token0 sold
        amount_in_token1: Amount of token1 sold
        fee_rate: Per-side fee as decimal

    Returns:
        Output amount floored to a whole token unit, 0 when no input

    Raises:
        InvalidArgumentsError: If both inputs are non-zero
    """
    if amount_in_token0 and amount_in_token1:
        raise InvalidArgumentsError(
            "quote_output_for_input() failure: both token0 and token1 inputted",
            function="quote_output_for_input",
        )

    fee_discount = ONE - d(fee_rate)

    if amount_in_token0:
        reserve_in, reserve_out, amount_in = d(reserve0), d(reserve1), d(amount_in_token0)
    elif amount_in_token1:
        reserve_in, reserve_out, amount_in = d(reserve1), d(reserve0), d(amount_in_token1)
    else:
        return ZERO

    out = reserve_out * amount_in * fee_discount / (reserve_in + amount_in) * fee_discount
    return out.to_integral_value(rounding=ROUND_FLOOR)
