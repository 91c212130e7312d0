"""
web3.py chain client: every on-chain read and write the bot performs.

All RPC calls are blocking, so the async methods run them in the default
thread pool executor to keep the event loop responsive. Failures surface as
ExternalCallError naming the call that failed.
"""

import asyncio
import functools
from decimal import Decimal
from typing import Any, Callable, Dict, List, Tuple

from web3 import Web3

from .abi import (
    CHAINLINK_AGGREGATOR_ABI,
    CHAINLINK_PRICE_DECIMALS,
    SYNC_EVENT_SIGNATURE,
    UNISWAP_V2_PAIR_ABI,
    UNISWAP_V2_ROUTER_ABI,
)
from .exceptions import ArbitrageError, ConfigError, ExternalCallError
from .types import Pool
from .utils import get_logger, swap_deadline

logger = get_logger(__name__)

CHAIN_NAMES = {
    1: "Ethereum Mainnet",
    43113: "Avalanche Fuji",
    43114: "Avalanche C-Chain",
}


class ChainClient:
    """
    Execution gateway and market data source backed by a Web3 instance.

    Args:
        web3: Connected Web3 instance
        router: Checksum address of the DEX router
        native_price_oracle: Checksum address of the Chainlink native/USD feed
        gas_probe: Representative swap used for gas estimation, raw amounts
            (token_in, token_out, amount_in, amount_out_min, account)
        swap_deadline_minutes: Router deadline used by the gas probe
        confirmation_timeout_sec: Upper bound on waiting for a receipt
    """

    def __init__(
        self,
        web3: Web3,
        router: str,
        native_price_oracle: str,
        gas_probe: Dict[str, Any],
        swap_deadline_minutes: int = 30,
        confirmation_timeout_sec: float = 120.0,
    ):
        self.web3 = web3
        self.router = web3.eth.contract(address=router, abi=UNISWAP_V2_ROUTER_ABI)
        self.oracle = web3.eth.contract(
            address=native_price_oracle, abi=CHAINLINK_AGGREGATOR_ABI
        )
        self.gas_probe = gas_probe
        self.swap_deadline_minutes = swap_deadline_minutes
        self.confirmation_timeout_sec = confirmation_timeout_sec
        self.sync_topic = Web3.to_hex(Web3.keccak(text=SYNC_EVENT_SIGNATURE))
        self._pairs: Dict[str, Any] = {}

    @classmethod
    def connect(
        cls,
        rpc_url: str,
        router: str,
        native_price_oracle: str,
        gas_probe: Dict[str, Any],
        swap_deadline_minutes: int = 30,
        confirmation_timeout_sec: float = 120.0,
        request_timeout: int = 10,
    ) -> "ChainClient":
        """
        Connect to RPC and validate the connection.

        Raises:
            ExternalCallError: If the endpoint is invalid or does not answer
        """
        if not rpc_url.startswith(("http://", "https://")):
            raise ExternalCallError(f"Invalid RPC URL format: {rpc_url}", call="connect")

        logger.info(f"Connecting to RPC: {rpc_url}")
        web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": request_timeout}))

        try:
            # Query the chain directly; is_connected() is unreliable on some nodes
            chain_id = web3.eth.chain_id
            block = web3.eth.block_number
        except Exception as e:
            raise ExternalCallError(
                f"Failed to connect to RPC endpoint: {e}", call="connect"
            ) from e

        chain_name = CHAIN_NAMES.get(chain_id, f"Chain {chain_id}")
        logger.info(f"Connected to {chain_name} (block #{block:,})")

        return cls(
            web3,
            router,
            native_price_oracle,
            gas_probe,
            swap_deadline_minutes=swap_deadline_minutes,
            confirmation_timeout_sec=confirmation_timeout_sec,
        )

    @classmethod
    def from_config(cls, config) -> "ChainClient":
        """Connect using an ArbConfig."""
        return cls.connect(
            config.node_url,
            config.router,
            config.native_price_oracle,
            config.gas_probe,
            swap_deadline_minutes=config.swap_deadline_minutes,
            confirmation_timeout_sec=config.confirmation_timeout_sec,
        )

    async def _run(self, call: str, fn: Callable, *args) -> Any:
        """Run a blocking call in the executor, wrapping failures."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args))
        except ArbitrageError:
            raise
        except Exception as e:
            raise ExternalCallError(f"{call} failed: {e}", call=call) from e

    def _pair(self, pool: Pool):
        pair = self._pairs.get(pool.address)
        if pair is None:
            pair = self.web3.eth.contract(address=pool.address, abi=UNISWAP_V2_PAIR_ABI)
            self._pairs[pool.address] = pair
        return pair

    def _swap_call(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        amount_out_min: int,
        account: str,
        deadline: int,
    ):
        return self.router.functions.swapExactTokensForTokens(
            amount_in, amount_out_min, [token_in, token_out], account, deadline
        )

    # === MARKET DATA ===

    def _read_native_price(self) -> Decimal:
        round_data = self.oracle.functions.latestRoundData().call()
        answer = round_data[1]
        return Decimal(answer) / (Decimal(10) ** CHAINLINK_PRICE_DECIMALS)

    def _read_base_fee(self) -> int:
        return int(self.web3.eth.gas_price)

    def _estimate_probe_gas(self) -> int:
        probe = self.gas_probe
        call = self._swap_call(
            probe["token_in"],
            probe["token_out"],
            probe["amount_in"],
            probe["amount_out_min"],
            probe["account"],
            swap_deadline(self.swap_deadline_minutes),
        )
        return int(call.estimate_gas({"from": probe["account"]}))

    async def get_native_token_price(self) -> Decimal:
        """Native token USD price from the Chainlink aggregator (8 decimals)."""
        return await self._run("get_native_token_price", self._read_native_price)

    async def get_network_base_fee(self) -> int:
        """Current network gas price in wei."""
        return await self._run("get_network_base_fee", self._read_base_fee)

    async def estimate_swap_gas(self) -> int:
        """Gas units for the configured representative swap."""
        return await self._run("estimate_swap_gas", self._estimate_probe_gas)

    # === EXECUTION ===

    def _send_swap(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        amount_out_min: int,
        priority_fee_wei: int,
        account: str,
        deadline: int,
    ) -> str:
        call = self._swap_call(
            token_in, token_out, amount_in, amount_out_min, account, deadline
        )
        tx_hash = call.transact({"from": account, "maxPriorityFeePerGas": priority_fee_wei})
        return Web3.to_hex(tx_hash)

    def _wait_receipt(self, tx_hash: str):
        receipt = self.web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self.confirmation_timeout_sec
        )
        if receipt["status"] == 0:
            raise ExternalCallError(
                f"Transaction reverted: {tx_hash}",
                call="wait_for_receipt",
                details={"block": receipt.get("blockNumber")},
            )
        return receipt

    async def submit_swap(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        amount_out_min: int,
        priority_fee_wei: int,
        account: str,
        deadline: int,
    ) -> str:
        """
        Submit swapExactTokensForTokens from a node-managed account.

        Args:
            token_in: Address of the token sold
            token_out: Address of the token bought
            amount_in: Raw input amount
            amount_out_min: Raw minimum output amount
            priority_fee_wei: Tip per gas unit in wei
            account: Sending account address
            deadline: Unix timestamp (seconds) after which the router reverts

        Returns:
            Transaction hash as hex string
        """
        return await self._run(
            "submit_swap",
            self._send_swap,
            token_in,
            token_out,
            amount_in,
            amount_out_min,
            priority_fee_wei,
            account,
            deadline,
        )

    async def wait_for_receipt(self, tx_hash: str):
        """Wait for a receipt; reverted transactions raise ExternalCallError."""
        return await self._run("wait_for_receipt", self._wait_receipt, tx_hash)

    # === EVENTS ===

    def _new_sync_filter(self, pool: Pool):
        return self.web3.eth.filter({"address": pool.address, "topics": [self.sync_topic]})

    def _poll_sync(self, pool: Pool, log_filter) -> List[Tuple[int, int]]:
        event = self._pair(pool).events.Sync()
        updates = []
        for log in log_filter.get_new_entries():
            args = event.process_log(log)["args"]
            updates.append((int(args["reserve0"]), int(args["reserve1"])))
        return updates

    async def create_sync_filter(self, pool: Pool):
        """Install a log filter for the pool's Sync events."""
        return await self._run("create_sync_filter", self._new_sync_filter, pool)

    async def fetch_sync_updates(self, pool: Pool, log_filter) -> List[Tuple[int, int]]:
        """New Sync events since the last poll as raw (reserve0, reserve1), in emission order."""
        return await self._run("fetch_sync_updates", self._poll_sync, pool, log_filter)

    # === STARTUP CHECKS ===

    def _check_pool_tokens(self, pool: Pool) -> None:
        pair = self._pair(pool)
        token0 = Web3.to_checksum_address(pair.functions.token0().call())
        token1 = Web3.to_checksum_address(pair.functions.token1().call())
        if token0 != pool.token0.address or token1 != pool.token1.address:
            raise ConfigError(
                f"Pool '{pool.name}' token order mismatch: on-chain ({token0}, {token1}), "
                f"configured ({pool.token0.symbol}={pool.token0.address}, "
                f"{pool.token1.symbol}={pool.token1.address})"
            )

    async def verify_pool_tokens(self, pool: Pool) -> None:
        """
        Check that the configured token0/token1 match the pair contract.

        Raises:
            ConfigError: If the order or addresses differ
            ExternalCallError: If the pair cannot be read
        """
        await self._run("verify_pool_tokens", self._check_pool_tokens, pool)

