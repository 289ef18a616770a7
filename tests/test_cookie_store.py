"""
Tests for cookie store adapters
"""

import time
from unittest.mock import AsyncMock, Mock

import pytest
from playwright.async_api import Error as PlaywrightError

from page_proxy.bridge.cookie_store import MemoryCookieStore, PlaywrightCookieStore
from page_proxy.exceptions import CookieStoreError
from page_proxy.types import SESSION_EXPIRES

CLOSED = "Target page, context or browser has been closed"


@pytest.fixture
def mock_context():
    """Create a mock Playwright BrowserContext."""
    context = Mock()
    context.cookies = AsyncMock(return_value=[])
    context.add_cookies = AsyncMock()
    context.clear_cookies = AsyncMock()
    return context


class TestPlaywrightCookieStore:
    """Tests for PlaywrightCookieStore."""

    def test_from_page_uses_page_context(self, fake_page):
        store = PlaywrightCookieStore.from_page(fake_page)

        assert store.context is fake_page.context

    @pytest.mark.asyncio
    async def test_read_cookies_for_url(self, mock_context, session_cookie):
        mock_context.cookies.return_value = [session_cookie]
        store = PlaywrightCookieStore(mock_context)

        cookies = await store.read_cookies_for("http://127.0.0.1:8080/page")

        mock_context.cookies.assert_awaited_once_with(["http://127.0.0.1:8080/page"])
        assert cookies == [session_cookie]

    @pytest.mark.asyncio
    async def test_every_read_goes_to_the_browser(self, mock_context):
        store = PlaywrightCookieStore(mock_context)

        await store.read_cookies_for("http://127.0.0.1/")
        await store.read_cookies_for("http://127.0.0.1/")

        assert mock_context.cookies.await_count == 2

    @pytest.mark.asyncio
    async def test_write_batches_live_cookies(self, mock_context, session_cookie, persistent_cookie):
        store = PlaywrightCookieStore(mock_context)
        other = dict(persistent_cookie, name="other", sameSite="Lax")

        await store.write_cookies([session_cookie, other])

        mock_context.add_cookies.assert_awaited_once()
        written = mock_context.add_cookies.await_args.args[0]
        assert [c["name"] for c in written] == ["foo", "other"]
        assert written[0]["expires"] == SESSION_EXPIRES
        assert "sameSite" not in written[0]
        assert written[1]["sameSite"] == "Lax"
        mock_context.clear_cookies.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_write_clears_expired_cookies(self, mock_context, session_cookie):
        store = PlaywrightCookieStore(mock_context)
        expired = dict(session_cookie, value="", expires=0.0)

        await store.write_cookies([expired])

        mock_context.add_cookies.assert_not_awaited()
        mock_context.clear_cookies.assert_awaited_once_with(
            name="foo", domain="127.0.0.1", path="/"
        )

    @pytest.mark.asyncio
    async def test_write_nothing(self, mock_context):
        store = PlaywrightCookieStore(mock_context)

        await store.write_cookies([])

        mock_context.add_cookies.assert_not_awaited()
        mock_context.clear_cookies.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_closed_context_read_raises_store_error(self, mock_context):
        mock_context.cookies.side_effect = PlaywrightError(CLOSED)
        store = PlaywrightCookieStore(mock_context)

        with pytest.raises(CookieStoreError) as exc_info:
            await store.read_cookies_for("http://127.0.0.1/")

        assert exc_info.value.url == "http://127.0.0.1/"
        assert isinstance(exc_info.value.__cause__, PlaywrightError)

    @pytest.mark.asyncio
    async def test_rejected_write_raises_store_error(self, mock_context, session_cookie):
        mock_context.add_cookies.side_effect = PlaywrightError("Cookie should have a url or a domain/path pair")
        store = PlaywrightCookieStore(mock_context)

        with pytest.raises(CookieStoreError, match="Could not write cookies"):
            await store.write_cookies([session_cookie])

    @pytest.mark.asyncio
    async def test_failed_clear_raises_store_error(self, mock_context, session_cookie):
        mock_context.clear_cookies.side_effect = PlaywrightError(CLOSED)
        store = PlaywrightCookieStore(mock_context)

        with pytest.raises(CookieStoreError, match="'foo'"):
            await store.write_cookies([dict(session_cookie, expires=0.0)])


class TestMemoryCookieStore:
    """Tests for MemoryCookieStore."""

    @pytest.mark.asyncio
    async def test_write_overwrites_same_key(self, session_cookie):
        store = MemoryCookieStore([session_cookie])

        await store.write_cookies([dict(session_cookie, value="baz")])

        cookies = store.all_cookies()
        assert len(cookies) == 1
        assert cookies[0]["value"] == "baz"

    @pytest.mark.asyncio
    async def test_different_paths_are_different_cookies(self, session_cookie):
        store = MemoryCookieStore([session_cookie])

        await store.write_cookies([dict(session_cookie, path="/admin", value="root")])

        assert len(store.all_cookies()) == 2
        assert await store.read_cookies_for("http://127.0.0.1/") == [session_cookie]

    @pytest.mark.asyncio
    async def test_expired_write_removes_cookie(self, session_cookie):
        store = MemoryCookieStore([session_cookie, dict(session_cookie, name="keep")])

        await store.write_cookies([dict(session_cookie, expires=time.time() - 1)])

        assert [c["name"] for c in store.all_cookies()] == ["keep"]

    @pytest.mark.asyncio
    async def test_read_filters_by_domain(self, session_cookie):
        store = MemoryCookieStore([session_cookie, dict(session_cookie, domain="example.com")])

        cookies = await store.read_cookies_for("http://127.0.0.1:9999/x")

        assert [c["domain"] for c in cookies] == ["127.0.0.1"]

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, session_cookie):
        store = MemoryCookieStore([session_cookie])

        cookies = await store.read_cookies_for("http://127.0.0.1/")
        cookies[0]["value"] = "mutated"

        assert store.all_cookies()[0]["value"] == "bar"
