"""
Configuration loading and validation for the pool arbitrage bot.

Static trading parameters and the token/pool registry come from a YAML file;
the RPC endpoint and trading account come from the environment (optionally a
.env file), matching how the bot is deployed.
"""

import os
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv
from web3 import Web3

from .exceptions import ConfigError

DEFAULT_NODE_URL_ENV = "NODE_URL"
DEFAULT_TRADER_ACCOUNT_ENV = "TRADER_ACCOUNT_PUBLIC_KEY"


class ArbConfig:
    """
    Parsed and validated configuration for the arbitrage bot.

    Attributes:
        node_url: HTTP(S) RPC endpoint
        trader_address: Checksum address that sends the swaps
        swap_amount_usd: USD swap size, used as the sizing target ratio
        profit_target_usd: Minimum expected value (USD) to execute
        swap_fee: Per-side pool fee as decimal (e.g., 0.003)
        fee_ratio: Share of expected value spent on the priority fee
        refresh_interval_ms: Market conditions refresh interval
        swap_deadline_minutes: Router deadline from submission time
        event_poll_sec: Seconds between Sync filter polls
        confirmation_timeout_sec: Upper bound on waiting for a receipt
        router: DEX router contract address
        native_price_oracle: Chainlink native/USD aggregator address
        gas_probe: Representative swap used for gas estimation
        tokens: Dict of {symbol -> {address, decimals}}
        pools: List of pool configs {name, address, token0, token1, fee}
    """

    def __init__(
        self, config_dict: Dict[str, Any], environ: Optional[Mapping[str, str]] = None
    ):
        """
        Parse and validate config from dictionary and environment.

        Args:
            config_dict: Loaded YAML config
            environ: Environment mapping (defaults to os.environ)

        Raises:
            ConfigError: If required fields missing or invalid
        """
        env = os.environ if environ is None else environ

        # Connection and account (secrets stay in the environment)
        self.node_url_env: str = config_dict.get("node_url_env", DEFAULT_NODE_URL_ENV)
        self.node_url: str = config_dict.get("node_url") or self._get_required_env(
            env, self.node_url_env
        )
        self.trader_account_env: str = config_dict.get(
            "trader_account_env", DEFAULT_TRADER_ACCOUNT_ENV
        )
        self.trader_address: str = self._checksum(
            self._get_required_env(env, self.trader_account_env),
            self.trader_account_env,
        )

        # Trading parameters
        self.swap_amount_usd: Decimal = self._positive_decimal(
            config_dict, "swap_amount_usd", 50
        )
        self.profit_target_usd: Decimal = self._positive_decimal(
            config_dict, "profit_target_usd", 3
        )
        self.swap_fee: Decimal = self._parse_fee(config_dict.get("swap_fee", 0.003))
        self.fee_ratio: Decimal = self._positive_decimal(config_dict, "fee_ratio", 0.1)

        # Loop timings
        self.refresh_interval_ms: int = int(config_dict.get("refresh_interval_ms", 15000))
        if self.refresh_interval_ms <= 0:
            raise ConfigError("refresh_interval_ms must be positive")
        self.swap_deadline_minutes: int = int(config_dict.get("swap_deadline_minutes", 30))
        self.event_poll_sec: float = float(config_dict.get("event_poll_sec", 1.0))
        self.confirmation_timeout_sec: float = float(
            config_dict.get("confirmation_timeout_sec", 120)
        )

        # Contracts
        self.router: str = self._checksum(
            self._get_required(config_dict, "router", str), "router"
        )
        self.native_price_oracle: str = self._checksum(
            self._get_required(config_dict, "native_price_oracle", str),
            "native_price_oracle",
        )

        # Token and pool registry
        self.tokens: Dict[str, Dict[str, Any]] = self._parse_tokens(
            self._get_required(config_dict, "tokens", dict)
        )
        self.pools: List[Dict[str, Any]] = self._parse_pools(
            self._get_required(config_dict, "pools", list), self.tokens, self.swap_fee
        )
        if not self.pools:
            raise ConfigError("At least one pool must be configured")

        self.gas_probe: Dict[str, Any] = self._parse_gas_probe(
            self._get_required(config_dict, "gas_probe", dict), self.tokens
        )

    @staticmethod
    def _get_required(d: Dict, key: str, expected_type: type) -> Any:
        """Get required config field with type validation."""
        if key not in d:
            raise ConfigError(f"Missing required config field: {key}")
        val = d[key]
        if not isinstance(val, expected_type):
            raise ConfigError(
                f"Config field '{key}' must be {expected_type.__name__}, got {type(val).__name__}"
            )
        return val

    @staticmethod
    def _get_required_env(env: Mapping[str, str], name: str) -> str:
        value = env.get(name)
        if not value:
            raise ConfigError(f'Required environment variable "{name}" is not set.')
        return value

    @staticmethod
    def _checksum(address: str, field_name: str) -> str:
        try:
            return Web3.to_checksum_address(address)
        except ValueError as e:
            raise ConfigError(f"Invalid address for '{field_name}': {address}") from e

    @staticmethod
    def _positive_decimal(d: Dict, key: str, default: Any) -> Decimal:
        value = Decimal(str(d.get(key, default)))
        if value <= 0:
            raise ConfigError(f"Config field '{key}' must be positive, got {value}")
        return value

    @staticmethod
    def _parse_fee(raw: Any) -> Decimal:
        fee = Decimal(str(raw))
        if fee < 0 or fee >= 1:
            raise ConfigError(f"Fee must be in [0, 1): {fee}")
        return fee

    @classmethod
    def _parse_tokens(cls, tokens_raw: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        """Parse and validate tokens config."""
        tokens = {}
        for symbol, info in tokens_raw.items():
            if not isinstance(info, dict):
                raise ConfigError(f"Token '{symbol}' config must be a dict")
            if "address" not in info:
                raise ConfigError(f"Token '{symbol}' missing 'address'")
            if "decimals" not in info:
                raise ConfigError(f"Token '{symbol}' missing 'decimals'")

            decimals = int(info["decimals"])
            if decimals < 0:
                raise ConfigError(f"Token '{symbol}' decimals must be >= 0")

            tokens[symbol] = {
                "address": cls._checksum(info["address"], f"tokens.{symbol}"),
                "decimals": decimals,
            }
        return tokens

    @classmethod
    def _parse_pools(
        cls,
        pools_raw: List[Any],
        tokens: Dict[str, Dict[str, Any]],
        default_fee: Decimal,
    ) -> List[Dict[str, Any]]:
        """Parse and validate pools config."""
        pools = []
        for i, pool in enumerate(pools_raw):
            if not isinstance(pool, dict):
                raise ConfigError(f"Pool config {i} must be a dict")

            name = pool.get("name")
            address = pool.get("address")
            token0 = pool.get("token0")
            token1 = pool.get("token1")

            if not all([name, address, token0, token1]):
                raise ConfigError(
                    f"Pool config {i} missing required fields (name, address, token0, token1)"
                )

            for symbol in (token0, token1):
                if symbol not in tokens:
                    raise ConfigError(f"Pool '{name}' references unknown token '{symbol}'")

            fee = pool.get("fee")
            pools.append(
                {
                    "name": name,
                    "address": cls._checksum(address, f"pools.{name}"),
                    "token0": token0,
                    "token1": token1,
                    "fee": default_fee if fee is None else cls._parse_fee(fee),
                }
            )

        return pools

    @classmethod
    def _parse_gas_probe(
        cls, probe_raw: Dict[str, Any], tokens: Dict[str, Dict[str, Any]]
    ) -> Dict[str, Any]:
        """
        Parse the representative swap used for gas estimation.

        Amounts are in token units and converted to raw integers here.
        """
        for key in ("token_in", "token_out", "amount_in", "amount_out_min", "account"):
            if key not in probe_raw:
                raise ConfigError(f"gas_probe missing '{key}'")

        token_in = tokens.get(probe_raw["token_in"])
        token_out = tokens.get(probe_raw["token_out"])
        if token_in is None or token_out is None:
            raise ConfigError("gas_probe references unknown token")

        return {
            "token_in": token_in["address"],
            "token_out": token_out["address"],
            "amount_in": int(
                Decimal(str(probe_raw["amount_in"])) * 10 ** token_in["decimals"]
            ),
            "amount_out_min": int(
                Decimal(str(probe_raw["amount_out_min"])) * 10 ** token_out["decimals"]
            ),
            "account": cls._checksum(probe_raw["account"], "gas_probe.account"),
        }

    @property
    def refresh_interval_sec(self) -> float:
        return self.refresh_interval_ms / 1000.0


def load_config(
    config_path: str, environ: Optional[Mapping[str, str]] = None
) -> ArbConfig:
    """
    Load and validate config from YAML file and environment.

    Args:
        config_path: Path to config YAML file
        environ: Environment mapping; when omitted, .env is loaded into os.environ

    Returns:
        Validated ArbConfig instance

    Raises:
        ConfigError: If config invalid or file not found
    """
    if environ is None:
        load_dotenv()

    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigError("Config file must contain a YAML dictionary")

    return ArbConfig(config_dict, environ)
