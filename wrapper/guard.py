# wrapper/guard.py
import logging
from collections.abc import Iterable

import httpx

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = {"http", "https"}


class RequestRejected(Exception):
    """A forward request refused before any outbound traffic."""

    def __init__(self, error: str, message: str) -> None:
        super().__init__(message)
        self.error = error
        self.message = message


class HostGuard:
    """Validates the target URL and refuses blocked hostnames."""

    def __init__(self, blocked_hosts: Iterable[str]) -> None:
        self.blocked_hosts = frozenset(h.lower() for h in blocked_hosts)

    def is_blocked(self, hostname: str) -> bool:
        return hostname.lower() in self.blocked_hosts

    def check(self, url: str) -> httpx.URL:
        """Return the parsed URL, or raise RequestRejected."""
        try:
            target = httpx.URL(url)
        except (httpx.InvalidURL, TypeError, ValueError):
            logger.warning("Invalid URL format: %s", url)
            raise RequestRejected("Invalid URL format", "Please provide a valid URL")

        if not target.is_absolute_url or not target.host:
            logger.warning("Invalid URL format: %s", url)
            raise RequestRejected("Invalid URL format", "Please provide a valid URL")

        if target.scheme not in _ALLOWED_SCHEMES:
            logger.warning("Unsupported protocol %r in %s", target.scheme, url)
            raise RequestRejected(
                "Unsupported protocol", "Only HTTP and HTTPS protocols are supported"
            )

        if self.is_blocked(target.host):
            logger.warning("Blocked hostname: %s", target.host)
            raise RequestRejected(
                "Blocked hostname",
                f"Cannot proxy requests to {target.host} for security reasons",
            )
        return target
