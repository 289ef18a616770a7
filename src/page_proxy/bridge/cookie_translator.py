"""
Cookie translation between browser cookie records and HTTP headers

Converts browser cookie records into an outbound ``Cookie`` header and decodes
upstream ``Set-Cookie`` lines back into browser cookie records. This module is
the only place where epoch-second expirations are converted to and from
HTTP-dates and ``Max-Age`` offsets.
"""

import ipaddress
import logging
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from urllib.parse import urlsplit

from ..exceptions import CookieDecodeError
from ..types import SESSION_EXPIRES, BrowserCookie, SameSite

logger = logging.getLogger(__name__)

# RFC 7230 token characters
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_MAX_AGE_RE = re.compile(r"^-?\d+$")

_SECURE_SCHEMES = ("https", "wss")

_SAME_SITE_VALUES: dict[str, SameSite] = {
    "strict": "Strict",
    "lax": "Lax",
    "none": "None",
}


@dataclass
class SetCookieParseResult:
    """Cookies decoded from a response, plus the lines that were dropped."""

    cookies: list[BrowserCookie] = field(default_factory=list)
    errors: list[CookieDecodeError] = field(default_factory=list)


def is_session_cookie(cookie: BrowserCookie) -> bool:
    """Return True if the cookie has no absolute expiration."""
    expires = cookie.get("expires", SESSION_EXPIRES)
    return expires is None or expires < 0


def is_expired(cookie: BrowserCookie, now: float) -> bool:
    """Return True if the cookie carries an absolute expiration at or before ``now``."""
    if is_session_cookie(cookie):
        return False
    return cookie["expires"] <= now


def cookie_key(cookie: BrowserCookie) -> tuple[str, str, str]:
    """Identity of a cookie in the browser store."""
    return cookie["name"], cookie["domain"].lower(), cookie.get("path") or "/"


def is_ip_literal(host: str) -> bool:
    """Return True if ``host`` is an IPv4 or IPv6 address rather than a name."""
    try:
        ipaddress.ip_address(host.strip("[]"))
    except ValueError:
        return False
    return True


def domain_matches(host: str, cookie_domain: str) -> bool:
    """
    Check a request host against a stored cookie domain.

    Domain cookies (leading dot) match the domain and any subdomain,
    host-only cookies match the exact host. IP addresses have no
    subdomains.
    """
    host = host.lower()
    cookie_domain = cookie_domain.lower()

    if cookie_domain.startswith("."):
        bare = cookie_domain[1:]
        if host == bare:
            return True
        return host.endswith("." + bare) and not is_ip_literal(host)

    return host == cookie_domain


def path_matches(request_path: str, cookie_path: str) -> bool:
    """RFC 6265 section 5.1.4 path-match."""
    if not request_path.startswith("/"):
        request_path = "/"

    if request_path == cookie_path:
        return True

    if request_path.startswith(cookie_path):
        if cookie_path.endswith("/"):
            return True
        if request_path[len(cookie_path)] == "/":
            return True

    return False


def to_wire_header(
    cookies: Iterable[BrowserCookie], url: str, now: float | None = None
) -> str:
    """
    Serialize the cookies that apply to ``url`` as a ``Cookie`` header value.

    Cookies are filtered by domain, path, the Secure flag against the URL
    scheme, and expiration. Input order is preserved.

    Args:
        cookies: Browser cookie records
        url: Absolute URL of the outbound request
        now: Reference time in epoch seconds (default: current time)

    Returns:
        ``name=value`` pairs joined by ``"; "``, or an empty string when no
        cookie applies
    """
    if now is None:
        now = time.time()

    parts = urlsplit(url)
    host = parts.hostname or ""
    path = parts.path or "/"
    secure_channel = parts.scheme.lower() in _SECURE_SCHEMES

    pairs = []
    for cookie in cookies:
        if not domain_matches(host, cookie["domain"]):
            continue
        if not path_matches(path, cookie.get("path") or "/"):
            continue
        if cookie.get("secure") and not secure_channel:
            continue
        if is_expired(cookie, now):
            continue
        pairs.append(f"{cookie['name']}={cookie['value']}")

    return "; ".join(pairs)


def http_date_to_epoch(value: str) -> float:
    """
    Parse an HTTP-date into epoch seconds.

    Raises:
        ValueError: If the value is not a recognizable date
    """
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, IndexError, OverflowError) as e:
        raise ValueError(f"invalid HTTP-date {value!r}") from e

    if parsed is None:
        raise ValueError(f"invalid HTTP-date {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.timestamp()


def epoch_to_http_date(expires: float) -> str:
    """Format epoch seconds as an IMF-fixdate, truncated to whole seconds."""
    moment = datetime.fromtimestamp(int(expires), tz=timezone.utc)
    return format_datetime(moment, usegmt=True)


def parse_set_cookie_line(line: str, url: str, received_at: float) -> BrowserCookie:
    """
    Decode one ``Set-Cookie`` header line into a browser cookie record.

    A missing Domain defaults to the request host (host-only cookie) and a
    missing Path defaults to ``/``. Max-Age is counted from ``received_at``
    and wins over Expires when both are present. Without either attribute
    the cookie is a session cookie.

    Args:
        line: Raw Set-Cookie header value
        url: URL of the request that produced the response
        received_at: Epoch seconds at which the response was received

    Returns:
        Decoded cookie record

    Raises:
        CookieDecodeError: If the line cannot be decoded
    """
    segments = line.strip().split(";")
    pair = segments[0].strip()

    if not pair:
        raise CookieDecodeError("empty Set-Cookie line", line)
    if "=" not in pair:
        raise CookieDecodeError("missing '=' in cookie pair", line)

    name, _, value = pair.partition("=")
    name = name.strip()
    value = value.strip()

    if not name or not _TOKEN_RE.match(name):
        raise CookieDecodeError("invalid cookie name", line)

    host = (urlsplit(url).hostname or "").lower()
    if not host:
        raise CookieDecodeError(f"request URL has no host: {url}", line)

    cookie: BrowserCookie = {
        "name": name,
        "value": value,
        "domain": host,
        "path": "/",
        "expires": SESSION_EXPIRES,
        "httpOnly": False,
        "secure": False,
    }

    expires_at: float | None = None
    max_age: int | None = None

    for segment in segments[1:]:
        key, _, attr_value = segment.partition("=")
        key = key.strip().lower()
        attr_value = attr_value.strip()

        if key == "expires":
            try:
                expires_at = http_date_to_epoch(attr_value)
            except ValueError as e:
                raise CookieDecodeError(f"invalid Expires attribute {attr_value!r}", line) from e
        elif key == "max-age":
            if not _MAX_AGE_RE.match(attr_value):
                raise CookieDecodeError(f"invalid Max-Age attribute {attr_value!r}", line)
            max_age = int(attr_value)
        elif key == "domain":
            domain = attr_value.lstrip(".").lower()
            if not domain:
                continue
            if is_ip_literal(host):
                # An IP host can only set host-only cookies
                if domain.strip("[]") != host.strip("[]"):
                    raise CookieDecodeError(
                        f"Domain attribute {domain!r} does not match host {host!r}", line
                    )
                continue
            if not domain_matches(host, "." + domain):
                raise CookieDecodeError(
                    f"Domain attribute {domain!r} does not match host {host!r}", line
                )
            cookie["domain"] = "." + domain
        elif key == "path":
            if attr_value.startswith("/"):
                cookie["path"] = attr_value
        elif key == "secure":
            cookie["secure"] = True
        elif key == "httponly":
            cookie["httpOnly"] = True
        elif key == "samesite":
            same_site = _SAME_SITE_VALUES.get(attr_value.lower())
            if same_site:
                cookie["sameSite"] = same_site

    if max_age is not None:
        # Max-Age <= 0 expires the cookie immediately
        cookie["expires"] = received_at + max_age if max_age > 0 else 0.0
    elif expires_at is not None:
        cookie["expires"] = max(expires_at, 0.0)

    return cookie


def parse_set_cookie(
    lines: Iterable[str], url: str, received_at: float | None = None
) -> SetCookieParseResult:
    """
    Decode every ``Set-Cookie`` line of a response.

    Lines that cannot be decoded are dropped and reported in
    ``SetCookieParseResult.errors``. Each line carries exactly one cookie.
    """
    if received_at is None:
        received_at = time.time()

    result = SetCookieParseResult()
    for line in lines:
        try:
            result.cookies.append(parse_set_cookie_line(line, url, received_at))
        except CookieDecodeError as e:
            logger.debug(f"Dropping Set-Cookie line: {e}")
            result.errors.append(e)

    return result


def format_set_cookie(cookie: BrowserCookie) -> str:
    """Encode a browser cookie record as a ``Set-Cookie`` header value."""
    parts = [f"{cookie['name']}={cookie['value']}"]

    if not is_session_cookie(cookie):
        parts.append(f"Expires={epoch_to_http_date(cookie['expires'])}")

    domain = cookie["domain"]
    if domain.startswith("."):
        parts.append(f"Domain={domain[1:]}")

    parts.append(f"Path={cookie.get('path') or '/'}")

    if cookie.get("secure"):
        parts.append("Secure")
    if cookie.get("httpOnly"):
        parts.append("HttpOnly")
    if same_site := cookie.get("sameSite"):
        parts.append(f"SameSite={same_site}")

    return "; ".join(parts)
