"""
Network layer for VarnishPurge.

Provides the request data model, the per-batch HTTPX client pool, and the
bounded-concurrency dispatcher that multiplexes requests on one event loop.
"""

from .client import ClientPool, build_async_client
from .dispatcher import CompletionCallback, ConcurrencyDispatcher
from .request import (
    CompletionRecord,
    Request,
    RequestQueue,
    merge_headers,
    merge_options,
)

__all__ = [
    # Data model
    "Request",
    "RequestQueue",
    "CompletionRecord",
    "merge_headers",
    "merge_options",
    # Engine
    "ConcurrencyDispatcher",
    "CompletionCallback",
    "ClientPool",
    "build_async_client",
]
