"""
Cookie store adapters

Narrow read/write access to the browser-held cookie store. Nothing is cached:
every read goes to the store, and a written cookie is only assumed visible
once the write call has returned.
"""

import logging
import time
from collections.abc import Sequence
from typing import Any, Protocol
from urllib.parse import urlsplit

from playwright.async_api import Error as PlaywrightError

from .cookie_translator import cookie_key, domain_matches, is_expired, path_matches
from ..exceptions import CookieStoreError
from ..types import BrowserCookie

logger = logging.getLogger(__name__)


class CookieStore(Protocol):
    """Read/write access to a browser cookie store."""

    async def read_cookies_for(self, url: str) -> list[BrowserCookie]: ...

    async def write_cookies(self, cookies: Sequence[BrowserCookie]) -> None: ...


class PlaywrightCookieStore:
    """
    Cookie store backed by a Playwright ``BrowserContext``.

    Playwright keeps cookies per context, so pages share one store.
    """

    def __init__(self, context: Any) -> None:
        """
        Initialize the adapter.

        Args:
            context: Playwright BrowserContext
        """
        self.context = context

    @classmethod
    def from_page(cls, page: Any) -> "PlaywrightCookieStore":
        """Create an adapter over the context that owns ``page``."""
        return cls(page.context)

    async def read_cookies_for(self, url: str) -> list[BrowserCookie]:
        """
        Read the cookies the browser would send to ``url``.

        Args:
            url: Absolute request URL

        Returns:
            Cookie records in store order

        Raises:
            CookieStoreError: If the browser context rejected the read
        """
        try:
            cookies = await self.context.cookies([url])
        except PlaywrightError as e:
            raise CookieStoreError(f"Could not read cookies: {e}", url=url) from e
        logger.debug(f"COOKIES ← read {len(cookies)} cookie(s) for {url}")
        return list(cookies)

    async def write_cookies(self, cookies: Sequence[BrowserCookie]) -> None:
        """
        Write cookies received from an upstream response.

        Live cookies are added in a single batch and overwrite any stored
        cookie with the same (name, domain, path). Cookies that are already
        expired are cleared from the store instead.

        Args:
            cookies: Decoded cookie records

        Raises:
            CookieStoreError: If the browser context rejected the write
        """
        if not cookies:
            return

        now = time.time()
        live = [cookie for cookie in cookies if not is_expired(cookie, now)]
        expired = [cookie for cookie in cookies if is_expired(cookie, now)]

        if live:
            try:
                await self.context.add_cookies([_to_playwright_cookie(c) for c in live])
            except PlaywrightError as e:
                raise CookieStoreError(f"Could not write cookies: {e}") from e
            logger.debug(f"COOKIES → wrote {len(live)} cookie(s)")

        for cookie in expired:
            name, domain, path = cookie_key(cookie)
            try:
                await self.context.clear_cookies(name=name, domain=domain, path=path)
            except PlaywrightError as e:
                raise CookieStoreError(f"Could not clear cookie {name!r}: {e}") from e
            logger.debug(f"COOKIES → cleared expired cookie {name!r} ({domain}{path})")


class MemoryCookieStore:
    """
    In-process cookie store keyed by (name, domain, path).

    Used where no browser is available, and as a test double for the
    Playwright store.
    """

    def __init__(self, cookies: Sequence[BrowserCookie] | None = None) -> None:
        self._cookies: dict[tuple[str, str, str], BrowserCookie] = {}
        for cookie in cookies or []:
            self._cookies[cookie_key(cookie)] = dict(cookie)  # type: ignore[assignment]

    async def read_cookies_for(self, url: str) -> list[BrowserCookie]:
        parts = urlsplit(url)
        host = parts.hostname or ""
        now = time.time()

        return [
            dict(cookie)  # type: ignore[misc]
            for cookie in self._cookies.values()
            if domain_matches(host, cookie["domain"])
            and path_matches(parts.path or "/", cookie.get("path") or "/")
            and not is_expired(cookie, now)
        ]

    async def write_cookies(self, cookies: Sequence[BrowserCookie]) -> None:
        now = time.time()
        for cookie in cookies:
            key = cookie_key(cookie)
            if is_expired(cookie, now):
                self._cookies.pop(key, None)
            else:
                self._cookies[key] = dict(cookie)  # type: ignore[assignment]

    def all_cookies(self) -> list[BrowserCookie]:
        """Return a snapshot of every stored cookie."""
        return [dict(cookie) for cookie in self._cookies.values()]  # type: ignore[misc]


def _to_playwright_cookie(cookie: BrowserCookie) -> dict[str, Any]:
    """Shape a cookie record for ``BrowserContext.add_cookies``."""
    result: dict[str, Any] = {
        "name": cookie["name"],
        "value": cookie["value"],
        "domain": cookie["domain"],
        "path": cookie.get("path") or "/",
        "expires": cookie["expires"],
        "httpOnly": bool(cookie.get("httpOnly", False)),
        "secure": bool(cookie.get("secure", False)),
    }
    if same_site := cookie.get("sameSite"):
        result["sameSite"] = same_site
    return result
