"""
Centralized logger configuration for the migrator.

By default, uses Python's standard logging under the 'filestore_migrator'
namespace. A custom logger (structlog, loguru, ...) can be installed with
``set_logger``.

Usage:
    from filestore_migrator.core.logger import get_logger
    logger = get_logger(__name__)
    logger.debug("Downloading %s", name)
"""

import logging
import sys
from typing import Any

NAMESPACE = "filestore_migrator"

# Matches the timestamp layout operators already grep for: [01/02/2006 15:04:05]
DEBUG_FORMAT = "[%(asctime)s] %(message)s"
DEBUG_DATEFMT = "%m/%d/%Y %H:%M:%S"

_custom_logger: Any = None


def set_logger(logger: Any) -> None:
    """
    Set a custom logger for all migrator components.

    Args:
        logger: Any object with debug/info/warning/error/exception methods,
                or None to go back to standard logging
    """
    global _custom_logger
    _custom_logger = logger


def get_logger(name: str = NAMESPACE) -> Any:
    """
    Get a logger instance.

    Returns the custom logger when one was set, otherwise a standard
    logger with a NullHandler so library use stays silent.
    """
    if _custom_logger is not None:
        return _custom_logger

    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def configure_logging(debug: bool = False, json_format: bool = False, stream=None) -> logging.Handler:
    """
    Configure console logging for a CLI run.

    Debug mode lowers the namespace level to DEBUG so every pipeline step
    is logged; it never changes what the run does.

    Args:
        debug: Emit a timestamped line for every pipeline step
        json_format: Emit structured JSON lines instead of plain text
        stream: Output stream (default: stderr)

    Returns:
        The installed handler
    """
    from filestore_migrator.monitoring.logging import MigrationContextFilter, MigrationJsonFormatter

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_format:
        handler.setFormatter(MigrationJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEBUG_FORMAT, datefmt=DEBUG_DATEFMT))
    handler.addFilter(MigrationContextFilter())

    root = logging.getLogger(NAMESPACE)
    for existing in list(root.handlers):
        if not isinstance(existing, logging.NullHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    return handler
