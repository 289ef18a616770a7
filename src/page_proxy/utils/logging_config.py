"""
Logging configuration utilities for page-proxy

Provides file logging configuration. The page proxy runs inside a host
application that owns stdout/stderr and the root logger, so log output goes
to a file through the package logger.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any

# Keys (and header names) whose values must never reach a log file
_SENSITIVE_KEYS = ("token", "password", "secret", "key", "cookie", "authorization")

PACKAGE_LOGGER = "page_proxy"

# File handler installed by setup_file_logging, replaced on each call
_file_handler: logging.FileHandler | None = None


def setup_file_logging(
    log_file: str | Path = "logs/page-proxy.log",
    level: int = logging.INFO,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Configure file logging for page-proxy.

    The handler is attached to the ``page_proxy`` logger only, so the host
    application's root logger configuration is left untouched. Calling this
    again replaces the previous file handler. Falls back to the system temp
    directory when the log directory cannot be created.

    Args:
        log_file: Path to the log file (relative or absolute)
        level: Logging level (default: logging.INFO)
        format_string: Custom format string (default: timestamp - name - level - message)

    Returns:
        The ``page_proxy`` logger
    """
    global _file_handler

    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path)
    except (OSError, PermissionError):
        log_path = Path(tempfile.gettempdir()) / log_path.name
        handler = logging.FileHandler(log_path)

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    handler.setFormatter(logging.Formatter(format_string))

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _file_handler is not None:
        logger.removeHandler(_file_handler)
        _file_handler.close()

    _file_handler = handler
    logger.addHandler(handler)
    logger.setLevel(level)

    logger.info(f"Logging configured: file={log_path}, level={logging.getLevelName(level)}")

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def is_sensitive(key: str) -> bool:
    """Return True if values under ``key`` must be masked."""
    return any(sensitive in key.lower() for sensitive in _SENSITIVE_KEYS)


def log_dict(
    logger: logging.Logger, message: str, data: dict[str, Any], level: int = logging.INFO
) -> None:
    """
    Log a dictionary with formatted key-value pairs.

    Args:
        logger: Logger instance
        message: Prefix message
        data: Dictionary to log
        level: Log level (default: INFO)
    """
    if not logger.isEnabledFor(level):
        return

    logger.log(level, message)
    for key, value in data.items():
        if is_sensitive(key):
            value = "***REDACTED***"
        logger.log(level, f"  {key}: {value}")
