"""
Pytest Configuration and Fixtures

This module provides shared fixtures for all tests.
"""

import logging
import time
from unittest.mock import AsyncMock, Mock

import pytest

# Import fixtures to make them available to all tests
from tests.fixtures.browser_fixture import fake_page, make_route  # noqa: F401
from tests.fixtures.helpers import MINUTE, round_to_minute
from tests.fixtures.tunnel_fixture import connect_proxy, tls_upstream  # noqa: F401
from tests.fixtures.upstream_fixture import upstream  # noqa: F401

from page_proxy.types import SESSION_EXPIRES


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo file logging set up by a test."""
    logger = logging.getLogger("page_proxy")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


@pytest.fixture
def session_cookie() -> dict:
    """Provide a host-only session cookie for 127.0.0.1."""
    return {
        "name": "foo",
        "value": "bar",
        "domain": "127.0.0.1",
        "path": "/",
        "expires": SESSION_EXPIRES,
        "httpOnly": False,
        "secure": False,
    }


@pytest.fixture
def persistent_cookie() -> dict:
    """Provide a cookie for 127.0.0.1 expiring in one hour."""
    return {
        "name": "foo",
        "value": "bar",
        "domain": "127.0.0.1",
        "path": "/",
        "expires": round_to_minute(time.time() + 60 * MINUTE),
        "httpOnly": False,
        "secure": False,
    }


@pytest.fixture
def mock_cookie_store():
    """
    Create a mock cookie store for unit testing.

    Reads return no cookies unless a test configures otherwise.
    """
    store = Mock()
    store.read_cookies_for = AsyncMock(return_value=[])
    store.write_cookies = AsyncMock()
    return store


@pytest.fixture
def mock_session():
    """Create a mock aiohttp session; send_request is patched in unit tests."""
    session = Mock()
    session.closed = False
    session.close = AsyncMock()
    return session
