"""
Unit tests for Prometheus metrics
"""

from decimal import Decimal

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from dex_arb.metrics import ArbMetrics
from dex_arb.types import MarketConditions


@pytest.fixture
def test_registry():
    """Create a test-specific registry"""
    return CollectorRegistry()


@pytest.fixture
def metrics(test_registry):
    """Create ArbMetrics instance with test registry"""
    return ArbMetrics(test_registry)


class TestArbMetrics:
    """Test ArbMetrics functionality"""

    def test_initialization(self, metrics, test_registry):
        assert metrics.registry is test_registry
        assert hasattr(metrics, "submissions_total")
        assert hasattr(metrics, "suppressed_total")

    def test_execution_metrics(self, metrics):
        pool = "[MIM/USDT.e]-[TRADER JOE]"

        metrics.record_opportunity(pool, "0->1")
        metrics.record_submission(pool, "0->1")
        metrics.record_confirmation(pool, "0->1", duration_seconds=2.5)
        metrics.record_execution_failure(pool, "confirm", duration_seconds=1.0)
        metrics.record_suppressed(pool)

        assert metrics.get_sample(
            "dex_arb_submissions_total", {"pool": pool, "direction": "0->1"}
        ) == 1.0
        assert metrics.get_sample(
            "dex_arb_confirmations_total", {"pool": pool, "direction": "0->1"}
        ) == 1.0
        assert metrics.get_sample(
            "dex_arb_execution_failures_total", {"pool": pool, "stage": "confirm"}
        ) == 1.0
        assert metrics.get_sample("dex_arb_suppressed_total", {"pool": pool}) == 1.0

        metric_output = generate_latest(metrics.registry).decode("utf-8")
        assert "dex_arb_execution_duration_seconds" in metric_output
        assert "dex_arb_opportunities_total" in metric_output

    def test_unrecorded_sample_is_zero(self, metrics):
        assert metrics.get_sample("dex_arb_suppressed_total", {"pool": "none"}) == 0.0

    def test_refresh_failures(self, metrics):
        metrics.record_refresh_failure("native_price_usd")
        metrics.record_refresh_failure("native_price_usd")

        assert metrics.get_sample(
            "dex_arb_refresh_failures_total", {"field": "native_price_usd"}
        ) == 2.0

    def test_market_gauges_skip_unknown_fields(self, metrics):
        metrics.update_market_conditions(
            MarketConditions(native_price_usd=Decimal("20.5"), base_fee_wei=25_000_000_000)
        )

        assert metrics.get_sample("dex_arb_native_price_usd") == 20.5
        assert metrics.get_sample("dex_arb_base_fee_wei") == 25_000_000_000
        assert metrics.get_sample("dex_arb_gas_estimate") == 0.0

    def test_separate_registries_do_not_collide(self):
        """Each registry gets its own collectors."""
        first = ArbMetrics(CollectorRegistry())
        second = ArbMetrics(CollectorRegistry())

        first.record_reserve_update("pool")

        assert first.get_sample("dex_arb_reserve_updates_total", {"pool": "pool"}) == 1.0
        assert second.get_sample("dex_arb_reserve_updates_total", {"pool": "pool"}) == 0.0
