"""Custom exception hierarchy for busfeed."""

from __future__ import annotations


class BusFeedError(Exception):
    """Base exception for all busfeed errors."""


class BusFeedConfigError(BusFeedError):
    """Invalid or missing configuration."""


class BusFeedTransportError(BusFeedError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class BusFeedApiError(BusFeedError):
    """Remote bus API rejected a request (``ok: false`` or an ``error`` field)."""

    def __init__(self, message: str, *, url: str = "") -> None:
        self.url = url
        super().__init__(message)


class FeedFormatError(BusFeedError):
    """Feed payload does not have the expected shape."""


class CacheLoadError(BusFeedError):
    """Cache file is missing, unreadable, or malformed.

    Not fatal on its own: the caller rebuilds the cache from the remote
    directory.
    """


class BootstrapError(BusFeedError):
    """The cache could not be rebuilt from the remote directory.

    There is no other source of truth at cold start, so the process
    should terminate.
    """
