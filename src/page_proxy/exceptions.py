"""Custom exceptions for page-proxy."""


class PageProxyError(Exception):
    """Base exception for page-proxy."""

    pass


class ConfigError(PageProxyError, ValueError):
    """Invalid configuration value."""

    pass


class CookieDecodeError(PageProxyError):
    """A Set-Cookie line could not be decoded into a cookie."""

    def __init__(self, reason: str, line: str | None = None):
        self.reason = reason
        self.line = line

        if line is not None:
            # Only the cookie name is safe to echo back
            name = line.split("=", 1)[0].strip() if "=" in line else line[:32]
            super().__init__(f"{reason} (cookie {name!r})")
        else:
            super().__init__(reason)


class ForwardingError(PageProxyError):
    """Failure at the network boundary of a proxied request."""

    def __init__(self, message: str, url: str | None = None):
        self.message = message
        self.url = url
        super().__init__(f"{message} at {url}" if url else message)


class TransportError(ForwardingError):
    """The outbound request could not be completed through the proxy."""

    pass


class RelayError(ForwardingError):
    """The intercepted request could no longer be fulfilled."""

    pass


class CookieStoreError(ForwardingError):
    """The browser cookie store could not be read or written."""

    pass
