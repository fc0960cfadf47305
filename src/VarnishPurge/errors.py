"""Exception hierarchy shared across request dispatch and purge orchestration.

Only :class:`ConfigError` is ever raised by the dispatcher, and it is raised
before any network I/O. Per-request failures are described with
:class:`TransportError` and :class:`UnacceptableStatusError` instances so
callers can inspect them as values; the batch itself never aborts on them.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "VarnishPurgeError",
    "ConfigError",
    "RequestFailure",
    "TransportError",
    "UnacceptableStatusError",
]


class VarnishPurgeError(RuntimeError):
    """Base exception for dispatch and purge failures."""


class ConfigError(VarnishPurgeError):
    """Raised when settings or the requested concurrency window are unusable."""


class RequestFailure(VarnishPurgeError):
    """Describes a single request that did not produce an accepted outcome."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url


class TransportError(RequestFailure):
    """Connection, DNS, TLS, or timeout failure for one request."""

    def __init__(self, message: str, *, url: str, error_type: Optional[str] = None) -> None:
        super().__init__(message, url=url)
        self.error_type = error_type


class UnacceptableStatusError(RequestFailure):
    """The server answered, but with a status outside the accepted set."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int,
        diagnostic: Optional[str] = None,
    ) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code
        self.diagnostic = diagnostic
