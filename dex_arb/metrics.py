"""
Prometheus metrics for the pool arbitrage bot.

Counts every stage of the event -> opportunity -> submission -> confirmation
pipeline and exposes the current market conditions snapshot as gauges.
"""

import logging
from typing import Any, Dict, Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)


class ArbMetrics:
    """
    Trading metrics collection and exposure.

    Provides Prometheus-compatible metrics for:
    - Reserve update events per pool
    - Opportunities, submissions, confirmations and failures per direction
    - Duplicate submission suppression
    - Market conditions refresh health
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize metrics with custom registry or default"""
        self.registry = registry or REGISTRY
        self._initialize_metrics()

    def _initialize_metrics(self):
        """Initialize all Prometheus metrics"""

        # === EVENT METRICS ===
        self.reserve_updates_total = Counter(
            "dex_arb_reserve_updates_total",
            "Total Sync events handled",
            ["pool"],
            registry=self.registry,
        )

        self.events_skipped_total = Counter(
            "dex_arb_events_skipped_total",
            "Reserve updates skipped before evaluation",
            ["pool", "reason"],
            registry=self.registry,
        )

        # === OPPORTUNITY METRICS ===
        self.opportunities_total = Counter(
            "dex_arb_opportunities_total",
            "Directions whose expected value cleared the profit target",
            ["pool", "direction"],
            registry=self.registry,
        )

        self.expected_value_usd = Histogram(
            "dex_arb_expected_value_usd",
            "Expected value of evaluated directions in USD",
            ["pool"],
            buckets=[0, 0.5, 1, 2, 3, 5, 10, 25, 50, 100],
            registry=self.registry,
        )

        self.missing_market_data_total = Counter(
            "dex_arb_missing_market_data_total",
            "Fee bids made without complete market conditions",
            ["pool"],
            registry=self.registry,
        )

        # === EXECUTION METRICS ===
        self.submissions_total = Counter(
            "dex_arb_submissions_total",
            "Swap transactions submitted",
            ["pool", "direction"],
            registry=self.registry,
        )

        self.confirmations_total = Counter(
            "dex_arb_confirmations_total",
            "Swap transactions confirmed successfully",
            ["pool", "direction"],
            registry=self.registry,
        )

        self.execution_failures_total = Counter(
            "dex_arb_execution_failures_total",
            "Swap submissions or confirmations that failed",
            ["pool", "stage"],
            registry=self.registry,
        )

        self.suppressed_total = Counter(
            "dex_arb_suppressed_total",
            "Executions suppressed while a submission was in flight",
            ["pool"],
            registry=self.registry,
        )

        self.execution_duration_seconds = Histogram(
            "dex_arb_execution_duration_seconds",
            "Time from submission to confirmation or failure",
            ["pool"],
            buckets=[0.5, 1, 2, 5, 10, 30, 60, 120],
            registry=self.registry,
        )

        # === MARKET CONDITIONS ===
        self.refresh_failures_total = Counter(
            "dex_arb_refresh_failures_total",
            "Failed market condition reads",
            ["field"],
            registry=self.registry,
        )

        self.native_price_usd = Gauge(
            "dex_arb_native_price_usd",
            "Last known native token price in USD",
            registry=self.registry,
        )

        self.base_fee_wei = Gauge(
            "dex_arb_base_fee_wei",
            "Last known network base fee in wei",
            registry=self.registry,
        )

        self.gas_estimate = Gauge(
            "dex_arb_gas_estimate",
            "Last known gas estimate for the reference swap",
            registry=self.registry,
        )

    # === RECORDING METHODS ===

    def record_reserve_update(self, pool: str):
        self.reserve_updates_total.labels(pool=pool).inc()

    def record_event_skipped(self, pool: str, reason: str):
        self.events_skipped_total.labels(pool=pool, reason=reason).inc()

    def record_evaluation(self, pool: str, expected_value_usd: float):
        self.expected_value_usd.labels(pool=pool).observe(expected_value_usd)

    def record_opportunity(self, pool: str, direction: str):
        self.opportunities_total.labels(pool=pool, direction=direction).inc()

    def record_missing_market_data(self, pool: str):
        self.missing_market_data_total.labels(pool=pool).inc()

    def record_submission(self, pool: str, direction: str):
        self.submissions_total.labels(pool=pool, direction=direction).inc()

    def record_confirmation(self, pool: str, direction: str, duration_seconds: float):
        """Record a confirmed swap"""
        self.confirmations_total.labels(pool=pool, direction=direction).inc()
        self.execution_duration_seconds.labels(pool=pool).observe(duration_seconds)

    def record_execution_failure(
        self, pool: str, stage: str, duration_seconds: float = 0.0
    ):
        """Record a failed submission ("submit") or confirmation ("confirm")"""
        self.execution_failures_total.labels(pool=pool, stage=stage).inc()
        if duration_seconds > 0:
            self.execution_duration_seconds.labels(pool=pool).observe(duration_seconds)

    def record_suppressed(self, pool: str):
        self.suppressed_total.labels(pool=pool).inc()

    def record_refresh_failure(self, field: str):
        self.refresh_failures_total.labels(field=field).inc()

    def update_market_conditions(self, conditions):
        """Mirror the known fields of a MarketConditions snapshot"""
        if conditions.native_price_usd is not None:
            self.native_price_usd.set(float(conditions.native_price_usd))
        if conditions.base_fee_wei is not None:
            self.base_fee_wei.set(conditions.base_fee_wei)
        if conditions.gas_estimate is not None:
            self.gas_estimate.set(conditions.gas_estimate)

    # === SERVER MANAGEMENT ===

    def start_server(self, port: int = 8000, host: str = "0.0.0.0") -> bool:
        """Start Prometheus metrics HTTP server in a daemon thread"""
        try:
            start_http_server(port, addr=host, registry=self.registry)
        except OSError as e:
            logger.error(f"Failed to start metrics server: {e}")
            return False

        logger.info(f"Prometheus metrics server started on http://{host}:{port}/metrics")
        return True

    def get_sample(self, name: str, labels: Optional[Dict[str, Any]] = None) -> float:
        """Current value of a sample, 0.0 if never recorded."""
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0
