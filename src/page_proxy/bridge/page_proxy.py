"""
Page proxy: forwards intercepted page requests through a forward proxy

Each call to ``PageProxy.proxy_request`` is one independent pass through

    Idle -> CookiesRead -> RequestSent -> {Succeeded, Failed}

reading the browser's cookies for the request URL, sending the request
through the proxy with those cookies, writing the cookies set by the
response back into the browser, and fulfilling the intercepted request.

Concurrent calls share nothing but the browser cookie store. Their reads and
writes may interleave, so two responses racing to set cookies for the same
domain resolve as last write wins.
"""

import itertools
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

import aiohttp
from playwright.async_api import Error as PlaywrightError

from .config import PageProxyConfig, load_page_proxy_config, merge_config
from .cookie_store import CookieStore, PlaywrightCookieStore
from .cookie_translator import parse_set_cookie, to_wire_header
from .request_builder import build_request, create_session, send_request
from .response_relay import relay_response
from ..exceptions import CookieStoreError, ForwardingError, RelayError, TransportError
from ..types import InterceptedRoute
from ..utils.logging_config import log_dict, setup_file_logging

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[InterceptedRoute, ForwardingError], Awaitable[None]]

_invocation_ids = itertools.count(1)


class BridgeState(str, Enum):
    """Stages of a single proxied request."""

    IDLE = "idle"
    COOKIES_READ = "cookies_read"
    REQUEST_SENT = "request_sent"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


async def abort_route(route: InterceptedRoute, error: ForwardingError) -> None:
    """
    Default failure policy for ``PageProxy.attach``: abort the page request.

    A route that was already handled elsewhere cannot be aborted; that case
    is logged and ignored.
    """
    logger.info(f"Aborting {route.request.url} after proxy failure: {error}")
    try:
        await route.abort()
    except PlaywrightError as e:
        logger.warning(f"Could not abort {route.request.url}: {e}")


class PageProxy:
    """
    Proxies Playwright page requests through an HTTP/HTTPS forward proxy
    while keeping the browser cookie store in sync with the proxied exchange.
    """

    def __init__(
        self,
        page: Any | None = None,
        *,
        cookie_store: CookieStore | None = None,
        config: PageProxyConfig | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """
        Initialize the page proxy.

        Args:
            page: Playwright Page whose context holds the cookies
            cookie_store: Cookie store to use instead of the page's context
            config: Overrides for the default configuration
            session: aiohttp session to send requests with; when omitted one is
                created on first use and closed by ``close()``. An injected
                session should not decompress bodies (``auto_decompress=False``)
                or keep its own cookies.

        Raises:
            ValueError: If neither a page nor a cookie store is given
        """
        if cookie_store is None:
            if page is None:
                raise ValueError("PageProxy needs a page or a cookie store")
            cookie_store = PlaywrightCookieStore.from_page(page)

        self.page = page
        self.cookie_store = cookie_store
        self.config = merge_config(config)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_env(cls, page: Any | None = None, **kwargs: Any) -> "PageProxy":
        """
        Create a page proxy configured from PAGE_PROXY_* environment variables.

        Also configures file logging when PAGE_PROXY_LOG_FILE is set.

        Args:
            page: Playwright Page
            **kwargs: Passed to PageProxy (``config`` entries override the environment)

        Returns:
            PageProxy instance
        """
        config = load_page_proxy_config()
        config.update(kwargs.pop("config", None) or {})

        if config.get("log_file"):
            setup_file_logging(
                log_file=config["log_file"],
                level=logging.getLevelName(config.get("log_level", "INFO")),
            )

        return cls(page, config=config, **kwargs)

    async def __aenter__(self) -> "PageProxy":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this proxy created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = create_session()
            self._owns_session = True
        return self._session

    def _advance(self, invocation: int, current: BridgeState, target: BridgeState) -> BridgeState:
        logger.debug(f"[{invocation}] {current.value} -> {target.value}")
        return target

    async def proxy_request(self, route: InterceptedRoute, proxy_url: str | None = None) -> None:
        """
        Forward an intercepted request through a proxy and fulfill it.

        Returns once the browser cookies are synchronized and the intercepted
        request is fulfilled. On failure the intercepted request is left
        untouched; the caller decides whether to abort it.

        Args:
            route: Intercepted route
            proxy_url: Forward proxy URL (default: configured ``proxy_url``)

        Raises:
            TransportError: If the upstream request failed; cookies are not written
            CookieStoreError: If the browser cookie store could not be read or
                written; a failed write leaves the route unfulfilled
            RelayError: If the route could not be fulfilled
            ForwardingError: If no usable proxy URL or target URL is given
        """
        invocation = next(_invocation_ids)
        request = route.request
        url = request.url
        state = BridgeState.IDLE

        proxy_url = proxy_url or self.config.get("proxy_url")
        if not proxy_url:
            self._advance(invocation, state, BridgeState.FAILED)
            raise ForwardingError("No proxy URL given or configured", url=url)

        try:
            cookies = await self.cookie_store.read_cookies_for(url)
        except CookieStoreError as e:
            self._advance(invocation, state, BridgeState.FAILED)
            logger.error(f"[{invocation}] Cookie read failed for {url}: {e}")
            raise
        state = self._advance(invocation, state, BridgeState.COOKIES_READ)

        try:
            outbound = build_request(route, proxy_url, to_wire_header(cookies, url))
        except ForwardingError:
            self._advance(invocation, state, BridgeState.FAILED)
            raise

        logger.info(
            f"UPSTREAM → [{invocation}] {outbound['method']} {url} "
            f"({outbound['proxy_mode']} via proxy, {len(cookies)} stored cookie(s))"
        )
        log_dict(logger, f"[{invocation}] Outbound headers:", outbound["headers"], logging.DEBUG)

        start_time = time.time()
        state = self._advance(invocation, state, BridgeState.REQUEST_SENT)

        try:
            response = await send_request(self._get_session(), outbound, self.config)
        except TransportError as e:
            duration = (time.time() - start_time) * 1000  # ms
            self._advance(invocation, state, BridgeState.FAILED)
            logger.error(f"UPSTREAM ✗ [{invocation}] {url} ({duration:.2f}ms) - {e}")
            raise

        duration = (time.time() - start_time) * 1000  # ms
        logger.info(
            f"UPSTREAM ← [{invocation}] {response['status']} {url} "
            f"({duration:.2f}ms, {len(response['body'])} bytes, "
            f"{len(response['set_cookie'])} Set-Cookie)"
        )

        parsed = parse_set_cookie(response["set_cookie"], response["url"], response["received_at"])
        for error in parsed.errors:
            logger.warning(f"[{invocation}] Ignoring Set-Cookie from {response['url']}: {error}")

        if parsed.cookies:
            try:
                await self.cookie_store.write_cookies(parsed.cookies)
            except CookieStoreError as e:
                self._advance(invocation, state, BridgeState.FAILED)
                logger.error(f"[{invocation}] Cookie write failed for {url}: {e}")
                raise

        try:
            await relay_response(route, response)
        except RelayError as e:
            self._advance(invocation, state, BridgeState.FAILED)
            logger.warning(f"[{invocation}] Response discarded, request no longer pending: {e}")
            raise

        self._advance(invocation, state, BridgeState.SUCCEEDED)

    async def attach(
        self,
        proxy_url: str | None = None,
        *,
        page: Any | None = None,
        url_pattern: str = "**/*",
        on_error: ErrorHandler | None = None,
    ) -> Callable[[], Awaitable[None]]:
        """
        Route every matching page request through ``proxy_request``.

        Args:
            proxy_url: Forward proxy URL (default: configured ``proxy_url``)
            page: Page to intercept (default: the page given at construction)
            url_pattern: Playwright route pattern
            on_error: Called with the route and error when forwarding fails
                (default: abort the route)

        Returns:
            Coroutine function that removes the route handler
        """
        target = page or self.page
        if target is None:
            raise ValueError("attach() needs a page")

        handle_error = on_error or abort_route

        async def handler(route: InterceptedRoute) -> None:
            try:
                await self.proxy_request(route, proxy_url)
            except ForwardingError as e:
                await handle_error(route, e)

        await target.route(url_pattern, handler)
        logger.info(f"Routing {url_pattern} through page proxy")

        async def detach() -> None:
            await target.unroute(url_pattern, handler)
            logger.info(f"Stopped routing {url_pattern} through page proxy")

        return detach


def create_page_proxy(page: Any | None = None, **kwargs: Any) -> PageProxy:
    """
    Create a page proxy for a Playwright page.

    Args:
        page: Playwright Page
        **kwargs: Passed to PageProxy

    Returns:
        PageProxy instance
    """
    return PageProxy(page, **kwargs)
