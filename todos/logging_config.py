"""
Logging configuration for todos.

Quiet by default; TODOS_VERBOSE=1 or --verbose turns on debug output.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path


def configure_quiet_mode(quiet: bool = True):
    """
    Keep the todos logger out of the user's way.

    Args:
        quiet: If True, only warnings and above reach stderr.
    """
    level = logging.WARNING if quiet else logging.INFO
    logging.getLogger("todos").setLevel(level)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("todos").setLevel(logging.DEBUG)


def configure_ops_log(todos_dir):
    """Configure a persistent operations log for a todos directory.

    Writes to {todos_dir}/todos-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed.
    """
    log_path = Path(todos_dir) / "todos-ops.log"
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

    todos_logger = logging.getLogger("todos")
    todos_logger.addHandler(handler)
    # Ensure todos logger allows INFO through even in quiet mode
    if todos_logger.level == logging.NOTSET or todos_logger.level > logging.INFO:
        todos_logger.setLevel(logging.INFO)

    return handler
