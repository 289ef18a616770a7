"""
Response relay back into the browser page

Fulfills an intercepted route with the upstream response. Set-Cookie lines
are passed through verbatim; the browser does not update its cookie jar from
fulfilled responses, so cookie synchronization happens separately.
"""

import logging

from playwright.async_api import Error as PlaywrightError

from ..exceptions import RelayError
from ..types import InterceptedRoute, UpstreamResponse

logger = logging.getLogger(__name__)


# Framing is redone by the browser for the fulfilled body
_FRAMING_HEADERS = frozenset(
    {"connection", "keep-alive", "proxy-connection", "transfer-encoding", "content-length"}
)


def relay_headers(response: UpstreamResponse) -> dict[str, str]:
    """
    Flatten upstream headers for ``Route.fulfill``.

    Playwright takes repeated Set-Cookie values joined by newlines.
    """
    headers = {
        name: value
        for name, value in response["headers"].items()
        if name.lower() not in _FRAMING_HEADERS
    }
    if response["set_cookie"]:
        headers["set-cookie"] = "\n".join(response["set_cookie"])
    return headers


async def relay_response(route: InterceptedRoute, response: UpstreamResponse) -> None:
    """
    Fulfill the intercepted route with the upstream response.

    Args:
        route: Intercepted route to fulfill
        response: Upstream response

    Raises:
        RelayError: If the route can no longer be fulfilled (already handled,
            aborted, or its page has gone away)
    """
    url = route.request.url

    try:
        await route.fulfill(
            status=response["status"],
            headers=relay_headers(response),
            body=response["body"],
        )
    except PlaywrightError as e:
        raise RelayError(f"Could not fulfill request: {e}", url=url) from e

    logger.debug(f"RELAY ← fulfilled {url} with status {response['status']}")
