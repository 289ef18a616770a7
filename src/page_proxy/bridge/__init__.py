"""
Page proxy bridge package

Forwards intercepted Playwright page requests through an HTTP/HTTPS forward
proxy and keeps the browser cookie store in sync with the proxied exchange.
"""

from .config import PageProxyConfig, load_page_proxy_config
from .cookie_store import CookieStore, MemoryCookieStore, PlaywrightCookieStore
from .cookie_translator import (
    SetCookieParseResult,
    format_set_cookie,
    parse_set_cookie,
    parse_set_cookie_line,
    to_wire_header,
)
from .page_proxy import BridgeState, PageProxy, abort_route, create_page_proxy
from .request_builder import build_request, parse_proxy_url, select_proxy_mode, send_request
from .response_relay import relay_response

__all__ = [
    "PageProxyConfig",
    "load_page_proxy_config",
    "CookieStore",
    "MemoryCookieStore",
    "PlaywrightCookieStore",
    "SetCookieParseResult",
    "format_set_cookie",
    "parse_set_cookie",
    "parse_set_cookie_line",
    "to_wire_header",
    "BridgeState",
    "PageProxy",
    "abort_route",
    "create_page_proxy",
    "build_request",
    "parse_proxy_url",
    "select_proxy_mode",
    "send_request",
    "relay_response",
]
