"""Utility modules for the page proxy."""

from .logging_config import get_logger, is_sensitive, log_dict, setup_file_logging

__all__ = ["get_logger", "is_sensitive", "log_dict", "setup_file_logging"]
