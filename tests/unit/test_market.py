"""
Unit tests for dex_arb/market.py
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest
from prometheus_client import CollectorRegistry

from dex_arb.exceptions import ExternalCallError
from dex_arb.market import MarketConditionsRefresher
from dex_arb.metrics import ArbMetrics


def make_client(price=Decimal("20"), base_fee=25_000_000_000, gas=125_000):
    client = Mock()
    client.get_native_token_price = AsyncMock(return_value=price)
    client.get_network_base_fee = AsyncMock(return_value=base_fee)
    client.estimate_swap_gas = AsyncMock(return_value=gas)
    return client


class TestMarketConditionsRefresher:
    def test_initial_snapshot_unknown(self):
        refresher = MarketConditionsRefresher(make_client())

        assert not refresher.snapshot.is_complete
        assert refresher.snapshot.native_price_usd is None

    @pytest.mark.asyncio
    async def test_refresh_once_fills_snapshot(self):
        metrics = ArbMetrics(CollectorRegistry())
        refresher = MarketConditionsRefresher(make_client(), metrics=metrics)

        snapshot = await refresher.refresh_once()

        assert snapshot is refresher.snapshot
        assert snapshot.native_price_usd == Decimal("20")
        assert snapshot.base_fee_wei == 25_000_000_000
        assert snapshot.gas_estimate == 125_000
        assert metrics.get_sample("dex_arb_gas_estimate") == 125_000

    @pytest.mark.asyncio
    async def test_failed_read_keeps_previous_value(self):
        """One failed field leaves the others and its own last value intact."""
        client = make_client()
        metrics = ArbMetrics(CollectorRegistry())
        refresher = MarketConditionsRefresher(client, metrics=metrics)
        await refresher.refresh_once()

        client.get_native_token_price = AsyncMock(
            side_effect=ExternalCallError("oracle down", call="get_native_token_price")
        )
        client.get_network_base_fee = AsyncMock(return_value=30_000_000_000)

        snapshot = await refresher.refresh_once()

        assert snapshot.native_price_usd == Decimal("20")
        assert snapshot.base_fee_wei == 30_000_000_000
        assert snapshot.gas_estimate == 125_000
        assert metrics.get_sample(
            "dex_arb_refresh_failures_total", {"field": "native_price_usd"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_failed_first_read_stays_unknown(self):
        client = make_client()
        client.estimate_swap_gas = AsyncMock(
            side_effect=ExternalCallError("execution reverted", call="estimate_swap_gas")
        )
        refresher = MarketConditionsRefresher(client)

        snapshot = await refresher.refresh_once()

        assert snapshot.gas_estimate is None
        assert snapshot.missing_fields() == ("gas_estimate",)

    @pytest.mark.asyncio
    async def test_snapshot_replaced_not_mutated(self):
        refresher = MarketConditionsRefresher(make_client())
        before = refresher.snapshot

        await refresher.refresh_once()

        assert refresher.snapshot is not before
        assert before.native_price_usd is None

    @pytest.mark.asyncio
    async def test_loop_keeps_running_after_failures(self):
        client = make_client()
        client.get_native_token_price = AsyncMock(
            side_effect=ExternalCallError("oracle down", call="get_native_token_price")
        )
        refresher = MarketConditionsRefresher(client, interval_sec=0.01)

        refresher.start()
        await asyncio.sleep(0.1)
        await refresher.stop()

        assert client.get_native_token_price.await_count >= 2
        assert client.estimate_swap_gas.await_count >= 2
        assert refresher.snapshot.base_fee_wei == 25_000_000_000

    @pytest.mark.asyncio
    async def test_unexpected_read_error_does_not_stop_loop(self):
        """Errors other than ExternalCallError keep the last value and the loop alive."""
        client = make_client()
        metrics = ArbMetrics(CollectorRegistry())
        refresher = MarketConditionsRefresher(client, interval_sec=0.01, metrics=metrics)
        await refresher.refresh_once()

        client.get_native_token_price = AsyncMock(side_effect=asyncio.TimeoutError())
        client.get_network_base_fee = AsyncMock(side_effect=ValueError("bad response"))

        task = refresher.start()
        await asyncio.sleep(0.1)
        assert not task.done()
        await refresher.stop()

        assert client.get_native_token_price.await_count >= 2
        assert client.estimate_swap_gas.await_count >= 3
        assert refresher.snapshot.native_price_usd == Decimal("20")
        assert refresher.snapshot.base_fee_wei == 25_000_000_000
        assert metrics.get_sample(
            "dex_arb_refresh_failures_total", {"field": "base_fee_wei"}
        ) >= 2.0

    @pytest.mark.asyncio
    async def test_failed_cycle_does_not_stop_loop(self, monkeypatch):
        refresher = MarketConditionsRefresher(make_client(), interval_sec=0.01)
        refresh = AsyncMock(side_effect=RuntimeError("snapshot publish failed"))
        monkeypatch.setattr(refresher, "refresh_once", refresh)

        task = refresher.start()
        await asyncio.sleep(0.1)
        assert not task.done()
        await refresher.stop()

        assert refresh.await_count >= 2

    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_cancels(self):
        refresher = MarketConditionsRefresher(make_client(), interval_sec=10)

        task = refresher.start()
        assert refresher.start() is task

        await asyncio.sleep(0)
        await refresher.stop()

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        refresher = MarketConditionsRefresher(make_client())
        await refresher.stop()
