"""
Per-pool decision engine: sizes, prices and bids a counter-trade for every
reserve update and executes it when expected value clears the profit target.
"""

import asyncio
import time
from decimal import Decimal
from typing import List, Optional

from .exceptions import ExternalCallError, MissingMarketDataError
from .fees import DEFAULT_FEE_RATIO, priority_fee_tip, scaled_priority_fee
from .metrics import ArbMetrics
from .pricing import quote_output_for_input, size_input_for_target_ratio
from .types import Direction, ExecutionResult, MarketConditions, Pool, SwapOpportunity
from .utils import Number, d, get_logger, swap_deadline

logger = get_logger(__name__)


class ArbitrageDecisionEngine:
    """
    Event handler for one pool.

    Everything computed for an event (rate, sized amounts, expected value,
    fee bid) lives in locals of that invocation. The only shared state is the
    pool's reserves and a lock that allows one in-flight submission per pool;
    decisions made while it is held are suppressed, not queued.

    Args:
        pool: Pool this engine trades
        gateway: Execution gateway (submit_swap / wait_for_receipt)
        market: Holder of the current MarketConditions in `.snapshot`
        trader_address: Account the swaps are sent from
        swap_amount_usd: Sizing constant passed as the target ratio
        profit_target_usd: Expected value a direction must exceed
        fee_ratio: Share of expected value spent on the priority fee
        swap_deadline_minutes: Router deadline from submission time
        metrics: Metrics sink (optional)
    """

    def __init__(
        self,
        pool: Pool,
        gateway,
        market,
        trader_address: str,
        swap_amount_usd: Number = 50,
        profit_target_usd: Number = 3,
        fee_ratio: Number = DEFAULT_FEE_RATIO,
        swap_deadline_minutes: int = 30,
        metrics: Optional[ArbMetrics] = None,
    ):
        self.pool = pool
        self.gateway = gateway
        self.market = market
        self.trader_address = trader_address
        self.swap_amount_usd = d(swap_amount_usd)
        self.profit_target_usd = d(profit_target_usd)
        self.fee_ratio = d(fee_ratio)
        self.swap_deadline_minutes = swap_deadline_minutes
        self.metrics = metrics
        self._lock = asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        """True while a submission for this pool is unresolved."""
        return self._lock.locked()

    async def on_reserves_update(
        self, raw_reserve0: int, raw_reserve1: int
    ) -> List[ExecutionResult]:
        """
        Handle one Sync event.

        Args:
            raw_reserve0: New raw reserve of token0
            raw_reserve1: New raw reserve of token1

        Returns:
            One ExecutionResult per direction whose expected value cleared
            the profit target (executed, failed or suppressed)
        """
        self.pool.update_reserves(raw_reserve0, raw_reserve1)
        if self.metrics:
            self.metrics.record_reserve_update(self.pool.name)

        results = []
        for opportunity in self.evaluate():
            if not self.is_profitable(opportunity):
                continue
            if self.metrics:
                self.metrics.record_opportunity(
                    self.pool.name, opportunity.direction.value
                )
            results.append(await self._execute(opportunity))
        return results

    def is_profitable(self, opportunity: SwapOpportunity) -> bool:
        return opportunity.expected_value_usd > self.profit_target_usd

    def evaluate(self) -> List[SwapOpportunity]:
        """
        Size, quote and bid both directions against the current reserves.

        Returns:
            Opportunities for every direction with a non-zero output,
            profitable or not
        """
        pool = self.pool
        if pool.is_cold:
            return []

        if pool.reserve1 == 0:
            logger.warning(f"{pool.name}: reserve1 is zero, skipping update")
            if self.metrics:
                self.metrics.record_event_skipped(pool.name, "zero_reserve")
            return []

        rate = pool.reserve0 / pool.reserve1
        conditions = self.market.snapshot

        opportunities = []
        for direction in Direction:
            opportunity = self._evaluate_direction(direction, rate, conditions)
            if opportunity is not None:
                opportunities.append(opportunity)
        return opportunities

    def _evaluate_direction(
        self, direction: Direction, rate: Decimal, conditions: MarketConditions
    ) -> Optional[SwapOpportunity]:
        pool = self.pool

        if direction is Direction.TOKEN0_TO_TOKEN1:
            token_in, token_out = pool.token0, pool.token1
            amount_in = size_input_for_target_ratio(
                pool.reserve0,
                pool.reserve1,
                self.swap_amount_usd,
                output_is_token1=True,
                fee_rate=pool.fee,
            )
            amount_out = quote_output_for_input(
                pool.reserve0, pool.reserve1, amount_in_token0=amount_in, fee_rate=pool.fee
            )
        else:
            token_in, token_out = pool.token1, pool.token0
            amount_in = size_input_for_target_ratio(
                pool.reserve0,
                pool.reserve1,
                self.swap_amount_usd,
                output_is_token0=True,
                fee_rate=pool.fee,
            )
            amount_out = quote_output_for_input(
                pool.reserve0, pool.reserve1, amount_in_token1=amount_in, fee_rate=pool.fee
            )

        if amount_out == 0:
            return None

        expected_value = (rate + 1) * amount_out
        priority_fee = self._priority_fee(expected_value, conditions)

        logger.info(
            f"Pool: {pool.name} [{direction.value}] | "
            f"MaxOut: {token_in.to_raw(amount_in)} ({rate:.6f}) | "
            f"tokensOut: ${amount_out:.4f} USD | EV: ${expected_value:.4f}"
        )
        if self.metrics:
            self.metrics.record_evaluation(pool.name, float(expected_value))

        return SwapOpportunity(
            pool_name=pool.name,
            direction=direction,
            token_in=token_in,
            token_out=token_out,
            amount_in=amount_in,
            amount_out=amount_out,
            expected_value_usd=expected_value,
            priority_fee_wei=priority_fee,
        )

    def _priority_fee(self, expected_value: Decimal, conditions: MarketConditions) -> int:
        """Tip for a direction; zero when market data is incomplete or the bid is negative."""
        try:
            conditions.require_complete()
        except MissingMarketDataError as e:
            logger.warning(f"{self.pool.name}: unable to calculate priority fee ({e})")
            if self.metrics:
                self.metrics.record_missing_market_data(self.pool.name)
            return 0

        # A zero gas estimate or native price leaves nothing to divide the budget by
        if not conditions.gas_estimate or not conditions.price_of_gas_unit_usd:
            logger.warning(
                f"{self.pool.name}: unable to calculate priority fee "
                f"(gas_estimate={conditions.gas_estimate}, "
                f"native_price_usd={conditions.native_price_usd})"
            )
            if self.metrics:
                self.metrics.record_missing_market_data(self.pool.name)
            return 0

        bid = scaled_priority_fee(
            conditions.base_fee_wei,
            expected_value,
            conditions.gas_estimate,
            conditions.price_of_gas_unit_usd,
            self.fee_ratio,
        )
        if bid < 0:
            logger.debug(
                f"{self.pool.name}: EV ${expected_value:.4f} does not cover the base fee "
                f"(bid {bid} wei), tipping 0"
            )
        return priority_fee_tip(bid)

    async def _execute(self, opportunity: SwapOpportunity) -> ExecutionResult:
        """Submit and confirm one swap under the pool's submission lock."""
        pool_name = self.pool.name
        direction = opportunity.direction.value

        if self._lock.locked():
            logger.info(
                f"{pool_name}: submission already in flight, suppressing [{direction}]"
            )
            if self.metrics:
                self.metrics.record_suppressed(pool_name)
            return ExecutionResult(opportunity=opportunity, success=False, suppressed=True)

        async with self._lock:
            start_time = time.time()
            logger.info(f"Executing: {opportunity.format_log()}")

            try:
                tx_hash = await self.gateway.submit_swap(
                    opportunity.token_in.address,
                    opportunity.token_out.address,
                    opportunity.raw_amount_in(),
                    opportunity.raw_amount_out(),
                    opportunity.priority_fee_wei,
                    self.trader_address,
                    swap_deadline(self.swap_deadline_minutes),
                )
            except ExternalCallError as e:
                elapsed = time.time() - start_time
                logger.error(f"{pool_name}: error submitting swap [{direction}]: {e}")
                if self.metrics:
                    self.metrics.record_execution_failure(pool_name, "submit", elapsed)
                return ExecutionResult(
                    opportunity=opportunity,
                    success=False,
                    error=str(e),
                    execution_time_ms=elapsed * 1000,
                )

            logger.info(f"{pool_name}: swap transaction initiated: {tx_hash}")
            if self.metrics:
                self.metrics.record_submission(pool_name, direction)

            try:
                await self.gateway.wait_for_receipt(tx_hash)
            except ExternalCallError as e:
                elapsed = time.time() - start_time
                logger.error(f"{pool_name}: swap {tx_hash} failed: {e}")
                if self.metrics:
                    self.metrics.record_execution_failure(pool_name, "confirm", elapsed)
                return ExecutionResult(
                    opportunity=opportunity,
                    success=False,
                    tx_hash=tx_hash,
                    error=str(e),
                    execution_time_ms=elapsed * 1000,
                )

            elapsed = time.time() - start_time
            logger.info(f"{pool_name}: swap transaction confirmed: {tx_hash}")
            if self.metrics:
                self.metrics.record_confirmation(pool_name, direction, elapsed)

            return ExecutionResult(
                opportunity=opportunity,
                success=True,
                tx_hash=tx_hash,
                execution_time_ms=elapsed * 1000,
            )
