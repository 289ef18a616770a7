"""
Configuration management for the page proxy

Loads configuration from environment variables with sensible defaults for
the outbound HTTP transport and logging.
"""

import logging
import os
from pathlib import Path
from typing import TypedDict

from dotenv import load_dotenv

from ..exceptions import ConfigError, ForwardingError

logger = logging.getLogger(__name__)

# Load environment variables from .env file
# Try multiple paths for .env file
env_loaded = False
for env_path in [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent.parent / ".env",
    Path.home() / ".env",
]:
    if env_path.exists():
        logger.info(f"Loading environment from: {env_path}")
        load_dotenv(env_path)
        env_loaded = True
        break

if not env_loaded:
    logger.debug("No .env file found, using system environment variables only")

ENV_PREFIX = "PAGE_PROXY_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class PageProxyConfig(TypedDict, total=False):
    """Configuration for the page proxy"""

    # Default forward proxy used when a call does not name one
    proxy_url: str | None

    # Transport
    timeout_seconds: float
    follow_redirects: bool
    verify_ssl: bool

    # Logging
    log_file: str | None
    log_level: str


DEFAULT_CONFIG: PageProxyConfig = {
    "proxy_url": None,
    "timeout_seconds": 30.0,
    "follow_redirects": False,
    "verify_ssl": True,
    "log_file": None,
    "log_level": "INFO",
}


def _get_bool_env(key: str, default: bool) -> bool:
    """Get boolean environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable"""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive, got {value!r}")
    return parsed


def load_page_proxy_config() -> PageProxyConfig:
    """
    Load page proxy configuration from environment variables.

    Returns:
        PageProxyConfig with all settings

    Raises:
        ConfigError: If a value is invalid
    """
    config: PageProxyConfig = {
        "proxy_url": os.getenv(f"{ENV_PREFIX}URL") or None,
        "timeout_seconds": _get_float_env(
            f"{ENV_PREFIX}TIMEOUT", DEFAULT_CONFIG["timeout_seconds"]
        ),
        "follow_redirects": _get_bool_env(
            f"{ENV_PREFIX}FOLLOW_REDIRECTS", DEFAULT_CONFIG["follow_redirects"]
        ),
        "verify_ssl": _get_bool_env(f"{ENV_PREFIX}VERIFY_SSL", DEFAULT_CONFIG["verify_ssl"]),
        "log_file": os.getenv(f"{ENV_PREFIX}LOG_FILE") or None,
        "log_level": os.getenv(f"{ENV_PREFIX}LOG_LEVEL", DEFAULT_CONFIG["log_level"]).upper(),
    }

    if config["log_level"] not in _LOG_LEVELS:
        raise ConfigError(
            f"{ENV_PREFIX}LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, "
            f"got {config['log_level']!r}"
        )

    if config["proxy_url"]:
        # request_builder imports this module
        from .request_builder import parse_proxy_url

        try:
            parse_proxy_url(config["proxy_url"])
        except ForwardingError as e:
            raise ConfigError(f"{ENV_PREFIX}URL is invalid: {e}") from e

    logger.debug(
        f"Page proxy config: timeout={config['timeout_seconds']}s, "
        f"follow_redirects={config['follow_redirects']}, "
        f"verify_ssl={config['verify_ssl']}, "
        f"default_proxy={'set' if config['proxy_url'] else 'unset'}"
    )

    return config


def merge_config(overrides: PageProxyConfig | None = None) -> PageProxyConfig:
    """
    Combine defaults with explicit overrides.

    Args:
        overrides: Keys to override (unset keys keep their defaults)

    Returns:
        Complete configuration
    """
    config: PageProxyConfig = DEFAULT_CONFIG.copy()
    if overrides:
        config.update(overrides)
    return config
