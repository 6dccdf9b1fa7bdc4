"""Custom exception hierarchy for regionfeed."""

from __future__ import annotations


class RegionFeedError(Exception):
    """Base exception for all regionfeed errors."""


class ConfigError(RegionFeedError):
    """Invalid or missing configuration."""


class LoaderNotStartedError(RegionFeedError):
    """Loader used outside of its ``async with`` block."""


class NetworkError(RegionFeedError):
    """HTTP-level failure (connection error, timeout, non-OK status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FormatError(RegionFeedError):
    """Response had an unexpected content type or shape."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class StorageError(RegionFeedError):
    """Client-side cache backend failed to read, write or decode an entry."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class SessionFatalError(RegionFeedError):
    """A load session could not continue at all.

    Only raised when the child keys of a parent region cannot be
    resolved.  The original error is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, parent_key: str = "") -> None:
        self.parent_key = parent_key
        super().__init__(message)
