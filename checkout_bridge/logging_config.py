"""
logging_config.py — Log setup for the Checkout Bridge

Called once from main.py at import time. Every module then logs through
`get_logger(__name__)` and inherits the root handlers configured here.

Output:
    • stdout, always (container logs)
    • a log file named by LOG_FILE, unless LOG_FILE is empty
Shop probes go through httpx, which logs each request at INFO; httpx and
httpcore are kept at WARNING so one bridged cart does not produce a line per probe.
"""

import logging
import os
import sys

DEFAULT_LOG_FILE = "checkout_bridge.log"
LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'


def setup_logging(log_file=None):
    """
    Installs the root handlers at INFO level.

    Args:
        log_file (str | None): File to append to. None reads LOG_FILE
            (default 'checkout_bridge.log'); an empty string means stdout only.
    """
    if log_file is None:
        log_file = os.environ.get("LOG_FILE", DEFAULT_LOG_FILE)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, handlers=handlers)

    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name):
    """Module logger; `name` is normally the caller's __name__."""
    return logging.getLogger(name)
