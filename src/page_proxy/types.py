"""
Type Definitions

Define TypedDict classes and protocols for the browser-facing and
upstream-facing data structures handled by the page proxy.
"""

from typing import Literal, Protocol, TypedDict

# Playwright reports session cookies with expires == -1
SESSION_EXPIRES: float = -1

SameSite = Literal["Strict", "Lax", "None"]

ProxyMode = Literal["forward", "tunnel"]


class _BrowserCookieRequired(TypedDict):
    name: str
    value: str
    domain: str
    path: str
    expires: float


class BrowserCookie(_BrowserCookieRequired, total=False):
    """
    Cookie record as stored by the browser.

    Mirrors the dictionaries returned by Playwright's ``BrowserContext.cookies()``.
    Domain cookies carry a leading dot, host-only cookies do not.
    ``expires`` is epoch seconds, or ``SESSION_EXPIRES`` for session cookies.
    """

    httpOnly: bool
    secure: bool
    sameSite: SameSite


class OutboundRequest(TypedDict):
    """Request to dispatch through the forward proxy."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    proxy_url: str
    proxy_mode: ProxyMode


class UpstreamResponse(TypedDict):
    """
    Response received from the upstream server.

    ``headers`` holds every header except Set-Cookie, repeated values
    comma-joined. ``set_cookie`` keeps each Set-Cookie line separately.
    """

    status: int
    headers: dict[str, str]
    set_cookie: list[str]
    body: bytes
    url: str
    received_at: float


class InterceptedRequest(Protocol):
    """Paused browser request (Playwright ``Request``)."""

    @property
    def method(self) -> str: ...

    @property
    def url(self) -> str: ...

    @property
    def headers(self) -> dict[str, str]: ...

    @property
    def post_data_buffer(self) -> bytes | None: ...


class InterceptedRoute(Protocol):
    """Fulfill/abort handle for an intercepted request (Playwright ``Route``)."""

    @property
    def request(self) -> InterceptedRequest: ...

    async def fulfill(
        self,
        *,
        status: int | None = None,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> None: ...

    async def abort(self, error_code: str | None = None) -> None: ...
