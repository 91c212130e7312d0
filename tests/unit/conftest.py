"""
Shared fixtures for dex_arb unit tests.
"""

import logging
from decimal import Decimal

import pytest
from web3 import Web3

from dex_arb.types import MarketConditions, Pool, Token

USDT_E = "0xc7198437980c041c805a1edcba50c1ce5db95118"
USDC = "0xb97ef9ef8734c71904d8002f8b6bc66dd9c48a6e"
MIM = "0x130966628846bfd36ff31a822705796e8cb8c18d"
TRADER = "0xf518ffede07512a3c24537fe6f4c6c7dbdacb418"


def make_config_dict():
    """Minimal valid config mirroring configs/traderjoe_stables.yaml."""
    return {
        "swap_amount_usd": 50,
        "profit_target_usd": 3,
        "swap_fee": 0.003,
        "refresh_interval_ms": 15000,
        "router": "0x60aE616a2155Ee3d9A68541Ba4544862310933d4",
        "native_price_oracle": "0x0a77230d17318075983913bc2145db16c7366156",
        "gas_probe": {
            "token_in": "USDT.e",
            "token_out": "USDC",
            "amount_in": 5,
            "amount_out_min": 1,
            "account": TRADER,
        },
        "tokens": {
            "USDT.e": {"address": USDT_E, "decimals": 6},
            "USDC": {"address": USDC, "decimals": 6},
            "MIM": {"address": MIM, "decimals": 18},
        },
        "pools": [
            {
                "name": "[MIM/USDT.e]-[TRADER JOE]",
                "address": "0xeaae66c72513796363181e0d3954a15a0a64cc22",
                "token0": "MIM",
                "token1": "USDT.e",
            },
            {
                "name": "[USDC/MIM]-[TRADER JOE]",
                "address": "0xa503a768aaff4237a5ebb1b7d3177703b56901eb",
                "token0": "MIM",
                "token1": "USDC",
            },
        ],
    }


@pytest.fixture
def config_dict():
    return make_config_dict()


@pytest.fixture
def environ():
    return {"NODE_URL": "http://localhost:8545", "TRADER_ACCOUNT_PUBLIC_KEY": TRADER}


@pytest.fixture
def stable_pool():
    """USDC.e/USDT.e style pool with 6-decimal tokens on both sides."""
    return Pool(
        name="[USDC.e/USDT.e]-[TRADER JOE]",
        address=Web3.to_checksum_address("0x2e02539203256c83c7a9f6fa6f8608a32a2b1ca2"),
        token0=Token(
            "USDC.e", Web3.to_checksum_address("0xa7d7079b0fead91f3e65f86e8915cb59c1a4c664"), 6
        ),
        token1=Token("USDT.e", Web3.to_checksum_address(USDT_E), 6),
        fee=Decimal("0.003"),
    )


@pytest.fixture
def full_market():
    """Complete market snapshot: $20 native token, 25 gwei base fee."""
    return MarketConditions(
        native_price_usd=Decimal("20"),
        base_fee_wei=25_000_000_000,
        gas_estimate=125_000,
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """logging_config.setup() rewires the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
