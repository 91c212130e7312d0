"""
Process-wide logging for the run_arb entry point.

dex_arb modules log through get_logger(), which gives each logger its own
handler so the library is usable without any setup. The CLI instead wants a
single stdout stream, so setup() strips those handlers and lets records
propagate to one root handler.

Usage:
    import logging_config
    logging_config.setup()
"""

import logging
import sys

PACKAGE_LOGGER = "dex_arb"

# Third-party loggers that log every RPC round trip at INFO/DEBUG
RPC_LOGGERS = ("web3", "urllib3")

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"


def _package_loggers():
    for name, logger in list(logging.root.manager.loggerDict.items()):
        if name.split(".")[0] == PACKAGE_LOGGER and isinstance(logger, logging.Logger):
            yield logger


def setup(level=logging.INFO, rpc_level=logging.WARNING):
    """
    Route all output through one stdout handler on the root logger.

    Args:
        level: Level for the root logger and every dex_arb logger
        rpc_level: Level for web3/urllib3 request logging
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    for logger in _package_loggers():
        logger.handlers.clear()
        logger.setLevel(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    logging.getLogger("__main__").setLevel(level)

    for name in RPC_LOGGERS:
        logging.getLogger(name).setLevel(rpc_level)


def setup_minimal():
    """Warnings and errors only (--quiet)."""
    setup(level=logging.WARNING)


def setup_debug():
    """Everything, including web3 request logs (--debug)."""
    setup(level=logging.DEBUG)
    logging.getLogger("web3").setLevel(logging.DEBUG)
