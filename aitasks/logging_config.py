"""
Logging configuration for ai-tasks.

Quiet by default; AI_TASKS_VERBOSE=1 or --verbose turns on debug output.
"""

import logging
import sys
import warnings
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Keep third-party output out of the way.

    Silences watchdog's internal chatter and Python warnings.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("watchdog").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

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

    logging.getLogger("aitasks").setLevel(logging.DEBUG)


def configure_ops_log(folder):
    """Configure a persistent operations log next to the task files.

    Writes to {folder}/ai-tasks-ops.log using a rotating file handler
    (1MB max, 3 backups). The watcher ignores it (not a .md file).
    Returns the handler so it can be removed on stop().
    """
    log_path = Path(folder) / "ai-tasks-ops.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=1_000_000,
        backupCount=3,
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    logger = logging.getLogger("aitasks")
    logger.addHandler(handler)
    # Let INFO through even in quiet mode
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)

    return handler
