"""
Background refresher for the process-wide market conditions snapshot.
"""

import asyncio
from dataclasses import replace
from typing import Optional

from .exceptions import ExternalCallError
from .metrics import ArbMetrics
from .types import MarketConditions
from .utils import get_logger

logger = get_logger(__name__)

DEFAULT_REFRESH_INTERVAL_SEC = 15.0


class MarketConditionsRefresher:
    """
    Periodically re-reads native price, base fee and gas estimate.

    Each field is read independently: a failed read logs a warning and keeps
    the previous value of that field. A fresh immutable snapshot is swapped in
    with a single assignment at the end of every cycle, so engines never see
    a half-updated one.

    Args:
        client: Source of the three readings (ChainClient or compatible)
        interval_sec: Pause between refresh cycles
        metrics: Metrics sink (optional)
    """

    def __init__(
        self,
        client,
        interval_sec: float = DEFAULT_REFRESH_INTERVAL_SEC,
        metrics: Optional[ArbMetrics] = None,
    ):
        self.client = client
        self.interval_sec = interval_sec
        self.metrics = metrics
        self._snapshot = MarketConditions()
        self._task: Optional[asyncio.Task] = None

    @property
    def snapshot(self) -> MarketConditions:
        """Latest known market conditions."""
        return self._snapshot

    async def _read(self, field: str, reader):
        try:
            return await reader()
        except ExternalCallError as e:
            logger.warning(f"Market refresh: {field} unavailable, keeping last value ({e})")
            if self.metrics:
                self.metrics.record_refresh_failure(field)
            return getattr(self._snapshot, field)
        except Exception as e:
            logger.error(
                f"Market refresh: unexpected error reading {field}, keeping last value: {e}",
                exc_info=True,
            )
            if self.metrics:
                self.metrics.record_refresh_failure(field)
            return getattr(self._snapshot, field)

    async def refresh_once(self) -> MarketConditions:
        """Run one refresh cycle and publish the resulting snapshot."""
        native_price_usd = await self._read(
            "native_price_usd", self.client.get_native_token_price
        )
        base_fee_wei = await self._read("base_fee_wei", self.client.get_network_base_fee)
        gas_estimate = await self._read("gas_estimate", self.client.estimate_swap_gas)

        self._snapshot = replace(
            self._snapshot,
            native_price_usd=native_price_usd,
            base_fee_wei=base_fee_wei,
            gas_estimate=gas_estimate,
        )

        if self.metrics:
            self.metrics.update_market_conditions(self._snapshot)

        logger.debug(
            f"Market conditions: price=${self._snapshot.native_price_usd} "
            f"base_fee={self._snapshot.base_fee_wei} gas={self._snapshot.gas_estimate}"
        )
        return self._snapshot

    async def run(self) -> None:
        """Refresh forever; one cycle at a time."""
        while True:
            try:
                await self.refresh_once()
            except Exception as e:
                logger.error(f"Market refresh cycle failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval_sec)

    def start(self) -> asyncio.Task:
        """Start the refresh loop as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="market-refresher")
        return self._task

    async def stop(self) -> None:
        """Cancel the refresh loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
