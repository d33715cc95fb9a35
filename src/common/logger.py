"""
Logging configuration for the B-tree index project.

All modules log through the standard library; this module wires up the
root logger once, from config.py, with an optional environment override
(BTREE_LOG_LEVEL) so the tree's DEBUG output can be switched on without
editing the config.

Usage:
    from src.common.logger import get_logger

    logger = get_logger(__name__)
    logger.debug("Root split, height is now 3")
"""

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LEVEL_ENV_VAR = "BTREE_LOG_LEVEL"

# Track if logging has been set up
_logging_initialized = False


def _resolve_level(level: Optional[str]) -> int:
    """Map a level name to its logging constant, falling back to INFO."""
    import config

    name = level or os.environ.get(LEVEL_ENV_VAR) or config.LOG_LEVEL
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_file_path: Optional[str] = None,
) -> None:
    """
    Initialize the root logger.

    Called implicitly by the first get_logger(). Later calls are ignored;
    use set_level() to change the level afterwards.

    Args:
        level: Level name. Defaults to $BTREE_LOG_LEVEL, then config.LOG_LEVEL.
        log_to_file: Also write to a file. Defaults to config.LOG_TO_FILE.
        log_file_path: File path. Defaults to config.LOG_FILE_PATH.
    """
    global _logging_initialized

    if _logging_initialized:
        return

    # Import config here to avoid circular imports
    import config

    numeric_level = _resolve_level(level)
    if log_to_file is None:
        log_to_file = config.LOG_TO_FILE
    log_file_path = log_file_path or config.LOG_FILE_PATH

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_to_file:
        file_handler = logging.FileHandler(log_file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    _logging_initialized = True


def set_level(level: str) -> None:
    """Change the root log level at runtime (e.g. for a --verbose flag)."""
    if not _logging_initialized:
        setup_logging(level=level)
        return
    logging.getLogger().setLevel(_resolve_level(level))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for the given module name, setting up logging on first use.

    Args:
        name: Name for the logger, typically __name__ of the calling module.
    """
    if not _logging_initialized:
        setup_logging()

    return logging.getLogger(name)
