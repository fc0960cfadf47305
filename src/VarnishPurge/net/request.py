# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.net.request",
#   "purpose": "Immutable request, FIFO queue, completion record, and default merging",
#   "sections": [
#     {"id": "Request", "name": "Request", "anchor": "class-Request", "kind": "class"},
#     {"id": "RequestQueue", "name": "RequestQueue", "anchor": "class-RequestQueue", "kind": "class"},
#     {"id": "CompletionRecord", "name": "CompletionRecord", "anchor": "class-CompletionRecord", "kind": "class"},
#     {"id": "merge_headers", "name": "merge_headers", "anchor": "function-merge_headers", "kind": "function"},
#     {"id": "merge_options", "name": "merge_options", "anchor": "function-merge_options", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Request, queue, and completion data types for the dispatcher.

A :class:`Request` is immutable once built. Header and option overrides are
stored as read-only mappings and merged over the engine defaults at admission
time by :func:`merge_headers` and :func:`merge_options`.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Deque, Iterable, Iterator, Mapping, Optional, Union

from ..config.models import TransportOptions

__all__ = [
    "Body",
    "Request",
    "RequestQueue",
    "CompletionRecord",
    "merge_headers",
    "merge_options",
]

Body = Union[bytes, str, Mapping[str, str]]


@dataclass(frozen=True)
class Request:
    """A fully specified HTTP call.

    Requests hash on ``(url, method)``; header, option and body mappings are
    read-only views and take no part in hashing.
    """

    url: str
    method: str = "GET"
    body: Optional[Body] = None
    headers: Optional[Mapping[str, str]] = None
    options: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers or {})))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options or {})))
        if isinstance(self.body, Mapping):
            object.__setattr__(self, "body", MappingProxyType(dict(self.body)))

    def __hash__(self) -> int:
        return hash((self.url, self.method))


class RequestQueue:
    """FIFO of pending requests; submission order decides admission order."""

    def __init__(self, requests: Iterable[Request] = ()) -> None:
        self._pending: Deque[Request] = deque(requests)

    def add(self, request: Request) -> None:
        self._pending.append(request)

    def request(
        self,
        url: str,
        method: str = "GET",
        body: Optional[Body] = None,
        headers: Optional[Mapping[str, str]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Request:
        """Build a :class:`Request` from parts and append it."""
        built = Request(url, method, body, headers, options)
        self.add(built)
        return built

    def get(
        self,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Request:
        return self.request(url, "GET", None, headers, options)

    def post(
        self,
        url: str,
        body: Optional[Body] = None,
        headers: Optional[Mapping[str, str]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Request:
        return self.request(url, "POST", body, headers, options)

    def peek(self) -> Optional[Request]:
        return self._pending[0] if self._pending else None

    def pop_next(self) -> Request:
        """Remove and return the oldest pending request.

        Raises:
            IndexError: If the queue is empty.
        """
        return self._pending.popleft()

    @property
    def remaining(self) -> int:
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def __bool__(self) -> bool:
        return bool(self._pending)

    def __iter__(self) -> Iterator[Request]:
        return iter(tuple(self._pending))


@dataclass(frozen=True)
class CompletionRecord:
    """Outcome of one request, produced exactly once per queued request.

    Attributes:
        request: The originating request.
        index: Position of the request in the submitted queue.
        status_code: HTTP status when a response was received.
        error: Transport error message, ``None`` when the exchange completed.
        error_type: Short transport error kind (``ConnectError``, ``timeout``...).
        body: Raw response body, empty when no response was received.
        elapsed_ms: Wall time from admission to completion.
    """

    request: Request
    index: int
    status_code: Optional[int] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    body: bytes = b""
    elapsed_ms: float = 0.0

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def transport_ok(self) -> bool:
        return self.error is None


def merge_headers(
    defaults: Optional[Mapping[str, str]], overrides: Optional[Mapping[str, str]]
) -> dict[str, str]:
    """Merge header sets; override keys win, compared case-insensitively."""
    merged = dict(defaults or {})
    casefold = {key.lower(): key for key in merged}
    for key, value in (overrides or {}).items():
        existing = casefold.pop(key.lower(), None)
        if existing is not None:
            del merged[existing]
        merged[key] = value
        casefold[key.lower()] = key
    return merged


def merge_options(
    defaults: TransportOptions, overrides: Optional[Mapping[str, Any]]
) -> TransportOptions:
    """Return effective transport options; override keys win.

    Raises:
        pydantic.ValidationError: If an override names an unknown option or
            carries an invalid value.
    """
    if not overrides:
        return defaults
    return TransportOptions.model_validate({**defaults.model_dump(), **dict(overrides)})
