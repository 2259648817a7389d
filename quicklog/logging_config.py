"""
Logging configuration for quicklog.

Quiet by default; QUICKLOG_DEBUG=1 or --verbose turns on debug output.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEBUG_ENV_VAR = "QUICKLOG_DEBUG"

OPS_LOG_FILENAME = "quicklog-ops.log"


def debug_requested() -> bool:
    return os.environ.get(DEBUG_ENV_VAR) == "1"


def configure_quiet_mode(quiet: bool = True):
    """
    Keep library and core logging out of the terminal.

    Args:
        quiet: If True, only warnings and above reach stderr.
    """
    level = logging.WARNING if quiet else logging.INFO
    logging.getLogger("quicklog").setLevel(level)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("quicklog").setLevel(logging.DEBUG)


def configure_ops_log(store_path):
    """Configure a persistent operations log for a quicklog store.

    Writes to {store_path}/quicklog-ops.log using a rotating file handler
    (1MB max, 3 backups). Always active regardless of --verbose.
    Returns the handler so it can be removed on close().
    """
    store_path = Path(store_path)
    store_path.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(store_path / OPS_LOG_FILENAME),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    quicklog_logger = logging.getLogger("quicklog")
    quicklog_logger.addHandler(handler)
    # Let INFO through even in quiet mode
    if quicklog_logger.level == logging.NOTSET or quicklog_logger.level > logging.INFO:
        quicklog_logger.setLevel(logging.INFO)

    return handler


def remove_ops_log(handler) -> None:
    """Detach and close a handler returned by configure_ops_log()."""
    logging.getLogger("quicklog").removeHandler(handler)
    handler.close()
