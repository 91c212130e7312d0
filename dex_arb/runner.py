"""
Runner: wires configuration, chain client, market refresher and one decision
engine plus event watcher per pool.
"""

import asyncio
from typing import Dict, List, Optional, Set

from .config import ArbConfig
from .engine import ArbitrageDecisionEngine
from .exceptions import ExternalCallError
from .market import MarketConditionsRefresher
from .metrics import ArbMetrics
from .types import Pool, Token
from .utils import get_logger

logger = get_logger(__name__)


def build_pools(config: ArbConfig) -> List[Pool]:
    """Build Token and Pool objects from the configured registry."""
    tokens = {
        symbol: Token(symbol=symbol, address=info["address"], decimals=info["decimals"])
        for symbol, info in config.tokens.items()
    }
    return [
        Pool(
            name=pool_cfg["name"],
            address=pool_cfg["address"],
            token0=tokens[pool_cfg["token0"]],
            token1=tokens[pool_cfg["token1"]],
            fee=pool_cfg["fee"],
        )
        for pool_cfg in config.pools
    ]


class ArbRunner:
    """
    Event-driven arbitrage runner.

    Each pool gets a watcher task polling its Sync filter; every reserve
    update is handed to the pool's engine as its own task so a slow
    confirmation never blocks event intake.
    """

    def __init__(self, config: ArbConfig, client, metrics: Optional[ArbMetrics] = None):
        """
        Initialize runner.

        Args:
            config: Validated ArbConfig
            client: Chain client (market data, execution and events)
            metrics: Metrics sink (optional)
        """
        self.config = config
        self.client = client
        self.metrics = metrics

        self.pools = build_pools(config)
        self.refresher = MarketConditionsRefresher(
            client, interval_sec=config.refresh_interval_sec, metrics=metrics
        )
        self.engines: Dict[str, ArbitrageDecisionEngine] = {}

        self._watchers: List[asyncio.Task] = []
        self._handlers: Set[asyncio.Task] = set()

    async def start(self) -> None:
        """
        Verify pools, start the refresher and one watcher per pool.

        Raises:
            ConfigError: If a pool's on-chain tokens differ from configuration
        """
        for pool in self.pools:
            await self.client.verify_pool_tokens(pool)
            logger.info(
                f"Watching {pool.name} ({pool.token0.symbol}/{pool.token1.symbol}) at {pool.address}"
            )

        # First cycle runs immediately and fills the snapshot
        self.refresher.start()

        for pool in self.pools:
            engine = ArbitrageDecisionEngine(
                pool,
                self.client,
                self.refresher,
                self.config.trader_address,
                swap_amount_usd=self.config.swap_amount_usd,
                profit_target_usd=self.config.profit_target_usd,
                fee_ratio=self.config.fee_ratio,
                swap_deadline_minutes=self.config.swap_deadline_minutes,
                metrics=self.metrics,
            )
            self.engines[pool.name] = engine
            self._watchers.append(
                asyncio.create_task(self._watch(pool, engine), name=f"watch:{pool.name}")
            )

        logger.info(
            f"Started {len(self._watchers)} pool watchers "
            f"(swap ${self.config.swap_amount_usd}, target ${self.config.profit_target_usd})"
        )

    async def _watch(self, pool: Pool, engine: ArbitrageDecisionEngine) -> None:
        """Poll the pool's Sync filter and dispatch updates in emission order."""
        log_filter = None
        while True:
            try:
                if log_filter is None:
                    log_filter = await self.client.create_sync_filter(pool)
                updates = await self.client.fetch_sync_updates(pool, log_filter)
            except ExternalCallError as e:
                logger.warning(f"{pool.name}: event polling failed, recreating filter: {e}")
                log_filter = None
                updates = []

            for reserve0, reserve1 in updates:
                logger.debug(f"{pool.name}: Sync reserve0={reserve0} reserve1={reserve1}")
                self.dispatch(engine, reserve0, reserve1)

            await asyncio.sleep(self.config.event_poll_sec)

    def dispatch(
        self, engine: ArbitrageDecisionEngine, reserve0: int, reserve1: int
    ) -> asyncio.Task:
        """Handle one reserve update as an independent, tracked task."""
        task = asyncio.create_task(engine.on_reserves_update(reserve0, reserve1))
        self._handlers.add(task)
        task.add_done_callback(self._on_handler_done)
        return task

    def _on_handler_done(self, task: asyncio.Task) -> None:
        self._handlers.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Reserve update handler failed: {exc}", exc_info=exc)

    async def run_async(self) -> None:
        """Start everything and run until cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._watchers)
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Cancel watchers, in-flight handlers and the refresher."""
        tasks = self._watchers + list(self._handlers)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._watchers = []
        self._handlers.clear()
        await self.refresher.stop()
        logger.info("Runner stopped")
