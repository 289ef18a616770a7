"""
page-proxy

Proxies Playwright page requests through an HTTP/HTTPS forward proxy while
keeping the browser's cookies consistent with the proxied exchange.
"""

from .bridge import (
    MemoryCookieStore,
    PageProxy,
    PageProxyConfig,
    PlaywrightCookieStore,
    create_page_proxy,
    load_page_proxy_config,
)
from .exceptions import (
    ConfigError,
    CookieDecodeError,
    CookieStoreError,
    ForwardingError,
    PageProxyError,
    RelayError,
    TransportError,
)
from .types import SESSION_EXPIRES, BrowserCookie, UpstreamResponse

__version__ = "1.0.0"

__all__ = [
    "MemoryCookieStore",
    "PageProxy",
    "PageProxyConfig",
    "PlaywrightCookieStore",
    "create_page_proxy",
    "load_page_proxy_config",
    "ConfigError",
    "CookieDecodeError",
    "CookieStoreError",
    "ForwardingError",
    "PageProxyError",
    "RelayError",
    "TransportError",
    "SESSION_EXPIRES",
    "BrowserCookie",
    "UpstreamResponse",
]
