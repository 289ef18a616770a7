"""
Outbound request construction and dispatch

Maps an intercepted browser request onto an aiohttp request routed through a
forward proxy. For ``http://`` targets aiohttp sends the absolute-form request
to the proxy (forward mode); for ``https://`` targets it opens a CONNECT tunnel
through the proxy (tunnel mode).
"""

import asyncio
import logging
import time
from urllib.parse import urlsplit

import aiohttp

from .config import PageProxyConfig
from ..exceptions import ForwardingError, TransportError
from ..types import InterceptedRoute, OutboundRequest, ProxyMode, UpstreamResponse

logger = logging.getLogger(__name__)

# Headers owned by the transport connection, never copied from the browser
_CONNECTION_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "transfer-encoding",
        "connection",
        "keep-alive",
        "proxy-connection",
    }
)

# Let the browser's own headers decide these, never aiohttp's defaults
_SKIP_AUTO_HEADERS = ("User-Agent", "Accept", "Accept-Encoding")

_PROXY_DEFAULT_PORTS = {"http": 80, "https": 443}


def select_proxy_mode(url: str) -> ProxyMode:
    """
    Select how the request travels through the proxy.

    Args:
        url: Absolute target URL

    Returns:
        "tunnel" for https/wss targets, "forward" for http/ws targets

    Raises:
        ForwardingError: If the scheme cannot be proxied
    """
    scheme = urlsplit(url).scheme.lower()
    if scheme in ("https", "wss"):
        return "tunnel"
    if scheme in ("http", "ws"):
        return "forward"
    raise ForwardingError(f"Cannot proxy {scheme or 'relative'} URL", url=url)


def parse_proxy_url(proxy_url: str) -> str:
    """
    Validate a forward proxy URL.

    Args:
        proxy_url: Proxy base URL, e.g. ``http://127.0.0.1:8080``

    Returns:
        Normalized proxy URL including an explicit port

    Raises:
        ForwardingError: If the URL is not an http(s) proxy address
    """
    try:
        parts = urlsplit(proxy_url)
        port = parts.port
    except ValueError as e:
        raise ForwardingError(f"Invalid proxy URL: {e}", url=proxy_url) from e

    scheme = parts.scheme.lower()
    if scheme not in _PROXY_DEFAULT_PORTS:
        raise ForwardingError(f"Unsupported proxy scheme {scheme!r}", url=proxy_url)
    if not parts.hostname:
        raise ForwardingError("Proxy URL has no host", url=proxy_url)

    if port is None:
        port = _PROXY_DEFAULT_PORTS[scheme]

    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"

    userinfo = ""
    if parts.username:
        userinfo = parts.username
        if parts.password:
            userinfo += f":{parts.password}"
        userinfo += "@"

    return f"{scheme}://{userinfo}{host}:{port}"


def build_request(
    route: InterceptedRoute, proxy_url: str, cookie_header: str
) -> OutboundRequest:
    """
    Build the outbound request for an intercepted browser request.

    Method, URL, headers and body are copied from the intercepted request.
    Any Cookie header the browser supplied is replaced by ``cookie_header``,
    or dropped when it is empty.

    Args:
        route: Intercepted route whose request is forwarded
        proxy_url: Forward proxy URL
        cookie_header: Value for the outbound Cookie header

    Returns:
        OutboundRequest ready for dispatch
    """
    request = route.request
    url = request.url

    headers: dict[str, str] = {}
    for name, value in request.headers.items():
        key = name.lower()
        if key == "cookie" or key in _CONNECTION_HEADERS:
            continue
        headers[key] = value

    if cookie_header:
        headers["cookie"] = cookie_header

    return {
        "method": request.method.upper(),
        "url": url,
        "headers": headers,
        "body": request.post_data_buffer,
        "proxy_url": parse_proxy_url(proxy_url),
        "proxy_mode": select_proxy_mode(url),
    }


def create_session() -> aiohttp.ClientSession:
    """
    Create a client session suitable for relaying responses.

    The session keeps no cookies of its own and does not decompress bodies,
    so relayed bytes match the relayed Content-Encoding header.
    """
    return aiohttp.ClientSession(
        cookie_jar=aiohttp.DummyCookieJar(),
        auto_decompress=False,
    )


async def send_request(
    session: aiohttp.ClientSession,
    request: OutboundRequest,
    config: PageProxyConfig,
) -> UpstreamResponse:
    """
    Dispatch an outbound request through its forward proxy.

    Args:
        session: aiohttp client session
        request: Request produced by build_request
        config: Transport configuration

    Returns:
        UpstreamResponse with the status, headers, Set-Cookie lines and body

    Raises:
        TransportError: If the request could not be completed
    """
    url = request["url"]
    timeout = aiohttp.ClientTimeout(total=config.get("timeout_seconds", 30.0))

    try:
        async with session.request(
            request["method"],
            url,
            headers=request["headers"],
            data=request["body"],
            proxy=request["proxy_url"],
            timeout=timeout,
            allow_redirects=config.get("follow_redirects", False),
            ssl=bool(config.get("verify_ssl", True)),
            skip_auto_headers=_SKIP_AUTO_HEADERS,
        ) as resp:
            received_at = time.time()
            body = await resp.read()

            headers: dict[str, str] = {}
            set_cookie: list[str] = []
            for name, value in resp.headers.items():
                key = name.lower()
                if key == "set-cookie":
                    set_cookie.append(value)
                elif key in headers:
                    headers[key] = f"{headers[key]}, {value}"
                else:
                    headers[key] = value

            return {
                "status": resp.status,
                "headers": headers,
                "set_cookie": set_cookie,
                "body": body,
                "url": str(resp.url),
                "received_at": received_at,
            }

    except asyncio.TimeoutError as e:
        raise TransportError("Upstream request timed out", url=url) from e
    except aiohttp.ClientError as e:
        raise TransportError(f"{type(e).__name__}: {e}", url=url) from e
