"""Logging setup for the relay process."""

import logging
import os
import sys
from typing import Optional

from epos_relay.config import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: Optional[str] = None) -> None:
    """Send all log records to stderr.

    The level comes from the argument, then EPOS_RELAY_LOG_LEVEL, then INFO.
    Calling this again replaces the previous handlers.
    """
    if log_level is None:
        log_level = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL)

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console_handler)
