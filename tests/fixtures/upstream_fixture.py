"""
Upstream server fixture for integration tests.

A real aiohttp application plays both the forward proxy and the origin
server: aiohttp clients send absolute-form requests to an HTTP proxy, and the
aiohttp server routes those by path like any other request. The raw request
target is recorded so tests can check the request really went through the
proxy.
"""

import socket
from collections.abc import Callable

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

Responder = Callable[[web.Request], web.Response]


def make_response(
    text: str = "foo",
    set_cookie: list[str] | tuple[str, ...] = (),
    headers: dict[str, str] | None = None,
    status: int = 200,
) -> web.Response:
    """Build a response carrying any number of Set-Cookie lines."""
    response = web.Response(text=text, status=status, headers=headers)
    for line in set_cookie:
        response.headers.add("Set-Cookie", line)
    return response


class UpstreamServer:
    """Scripted upstream: the n-th request gets the n-th responder."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.responders: list[Responder] = []
        self.app = web.Application()
        self.app.router.add_route("*", "/{tail:.*}", self._handle)
        self.server = TestServer(self.app)

    @property
    def url(self) -> str:
        return str(self.server.make_url("/"))

    @property
    def proxy_url(self) -> str:
        return f"http://127.0.0.1:{self.server.port}"

    def respond_with(self, *responders: Responder) -> None:
        self.responders.extend(responders)

    async def _handle(self, request: web.Request) -> web.Response:
        self.requests.append(
            {
                "method": request.method,
                "raw_path": request.raw_path,
                "path": request.path,
                "cookie": request.headers.get("Cookie"),
                "headers": dict(request.headers),
                "body": await request.read(),
            }
        )

        index = len(self.requests) - 1
        if index < len(self.responders):
            return self.responders[index](request)
        return make_response("foo")


def unused_port() -> int:
    """Return a local TCP port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest_asyncio.fixture
async def upstream():
    """
    Start a scripted upstream server for the duration of a test.

    Yields:
        UpstreamServer serving on 127.0.0.1
    """
    server = UpstreamServer()
    await server.server.start_server()
    try:
        yield server
    finally:
        await server.server.close()
