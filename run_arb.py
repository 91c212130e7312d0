#!/usr/bin/env python3
"""
Pool self-trade arbitrage bot CLI.

Watches the configured pools for Sync events and submits counter-trades
whose expected value clears the profit target.

Usage:
    python3 run_arb.py
    python3 run_arb.py --config configs/traderjoe_stables.yaml
    python3 run_arb.py --config configs/traderjoe_stables.yaml --metrics-port 9100
"""

import argparse
import asyncio
import sys

import logging_config
from dex_arb.chain import ChainClient
from dex_arb.config import load_config
from dex_arb.exceptions import ConfigError, ExternalCallError
from dex_arb.metrics import ArbMetrics
from dex_arb.runner import ArbRunner
from dex_arb.utils import get_logger

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Constant-product pool self-trade arbitrage bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config
  python3 run_arb.py

  # Verbose logging
  python3 run_arb.py --debug

  # Expose Prometheus metrics
  python3 run_arb.py --metrics-port 9100
        """,
    )

    parser.add_argument(
        "--config",
        default="configs/traderjoe_stables.yaml",
        help="Path to config YAML file (default: configs/traderjoe_stables.yaml)",
    )

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--debug", action="store_true", help="Verbose logging")
    verbosity.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )

    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port (disabled by default)",
    )

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    if args.debug:
        logging_config.setup_debug()
    elif args.quiet:
        logging_config.setup_minimal()
    else:
        logging_config.setup()

    # Load config
    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        return 1

    metrics = ArbMetrics()
    if args.metrics_port is not None and not metrics.start_server(args.metrics_port):
        return 1

    # Connect
    try:
        client = ChainClient.from_config(config)
    except ExternalCallError as e:
        logger.error(f"Initialization failed: {e}")
        return 1

    runner = ArbRunner(config, client, metrics=metrics)

    try:
        asyncio.run(runner.run_async())
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0
    except (ConfigError, ExternalCallError) as e:
        logger.error(f"Runner failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
