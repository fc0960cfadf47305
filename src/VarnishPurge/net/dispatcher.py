# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.net.dispatcher",
#   "purpose": "Sliding-window request dispatcher on a single asyncio event loop",
#   "sections": [
#     {"id": "ConcurrencyDispatcher", "name": "ConcurrencyDispatcher", "anchor": "class-ConcurrencyDispatcher", "kind": "class"},
#     {"id": "_body_kwargs", "name": "_body_kwargs", "anchor": "function-_body_kwargs", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Bounded-concurrency HTTP request dispatcher.

Drains a queue of :class:`~VarnishPurge.net.request.Request` objects with at
most ``window`` of them in flight, on a single event loop. Three sets drive
the loop: pending (the queue), in flight (at most ``window`` tasks), and done
(a counter). Whenever a request moves from in flight to done, one pending
request is admitted in its place. Each request produces exactly one
:class:`~VarnishPurge.net.request.CompletionRecord`, handed synchronously to
the completion callback.

No request failure aborts the batch. The only raised error is
:class:`~VarnishPurge.errors.ConfigError`, before any network I/O, when two or
more requests are queued and the effective window is below two, or when a
request carries transport options or headers that cannot be sent.

Usage:
    dispatcher = ConcurrencyDispatcher(EngineConfig(window_size=4))
    dispatcher.execute(requests, callback=lambda record: print(record.status_code))
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Iterable, Optional, Union

import httpx
from pydantic import ValidationError

from ..config.models import EngineConfig
from ..errors import ConfigError
from .client import ClientPool, build_timeout
from .request import CompletionRecord, Request, RequestQueue, merge_headers, merge_options

__all__ = ["CompletionCallback", "ConcurrencyDispatcher"]

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[CompletionRecord], object]
Requests = Union[RequestQueue, Iterable[Request]]

MIN_WINDOW = 2


class ConcurrencyDispatcher:
    """Execute queued requests under a sliding concurrency window.

    Args:
        config: Engine defaults (options, headers, window size, poll timeout).
        callback: Completion callback used when ``execute`` is not given one.
        transport: Optional httpx transport, shared by every client the
            dispatcher opens (tests pass ``httpx.MockTransport`` here).
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        callback: Optional[CompletionCallback] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.callback = callback
        self._transport = transport

    # ------------------------------------------------------------------
    # Synchronous entry points
    # ------------------------------------------------------------------

    def execute(
        self,
        requests: Requests,
        window: Optional[int] = None,
        callback: Optional[CompletionCallback] = None,
    ) -> Optional[bytes]:
        """Run every request to completion.

        Returns the raw response body only in single-shot mode (exactly one
        request and no callback); ``None`` otherwise.

        Must not be called from inside a running event loop; use
        :meth:`execute_async` there.
        """
        return asyncio.run(self.execute_async(requests, window, callback))

    def execute_one(self, request: Request) -> CompletionRecord:
        """Issue one request directly and return its completion record."""
        return asyncio.run(self.execute_one_async(request))

    # ------------------------------------------------------------------
    # Asynchronous entry points
    # ------------------------------------------------------------------

    async def execute_async(
        self,
        requests: Requests,
        window: Optional[int] = None,
        callback: Optional[CompletionCallback] = None,
    ) -> Optional[bytes]:
        queue = requests if isinstance(requests, RequestQueue) else RequestQueue(requests)
        callback = callback or self.callback
        total = len(queue)

        if total == 0:
            logger.debug("Dispatch skipped: no requests queued")
            return None

        self._check_options(queue)

        if total == 1:
            # The window only governs multi-request batches.
            record = await self.execute_one_async(queue.pop_next())
            if callback is None:
                return record.body if record.transport_ok else None
            callback(record)
            return None

        effective = self._effective_window(window, total)
        started = time.perf_counter()
        logger.debug(f"Dispatching {total} requests with window={effective}")
        async with ClientPool(self._transport) as pool:
            await self._run_window(queue, effective, callback, pool)
        logger.info(
            "Dispatch complete",
            extra={
                "extra_fields": {
                    "requests": total,
                    "window": effective,
                    "elapsed_ms": round((time.perf_counter() - started) * 1000.0, 2),
                }
            },
        )
        return None

    async def execute_one_async(self, request: Request) -> CompletionRecord:
        self._check_options(RequestQueue([request]))
        async with ClientPool(self._transport) as pool:
            return await self._perform(pool, request, 0)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_options(self, queue: RequestQueue) -> None:
        for request in queue:
            try:
                merge_options(self.config.options, request.options)
            except ValidationError as exc:
                raise ConfigError(f"Invalid transport options for {request.url}: {exc}") from exc
            try:
                # Header names and values must be ASCII on the wire.
                httpx.Headers(merge_headers(self.config.headers, request.headers))
            except (UnicodeEncodeError, TypeError) as exc:
                raise ConfigError(f"Invalid headers for {request.url}: {exc}") from exc

    def _effective_window(self, window: Optional[int], total: int) -> int:
        requested = self.config.window_size if window is None else window
        effective = min(requested, total)
        if effective < MIN_WINDOW:
            raise ConfigError(
                f"Window size must be greater than 1 (requested {requested}, {total} requests queued)"
            )
        return effective

    async def _run_window(
        self,
        queue: RequestQueue,
        window: int,
        callback: Optional[CompletionCallback],
        pool: ClientPool,
    ) -> None:
        in_flight: Dict[asyncio.Task[CompletionRecord], int] = {}
        next_index = 0

        def admit() -> None:
            nonlocal next_index
            request = queue.pop_next()
            task = asyncio.ensure_future(self._perform(pool, request, next_index))
            in_flight[task] = next_index
            next_index += 1

        for _ in range(window):
            admit()

        try:
            while in_flight:
                done, _ = await asyncio.wait(
                    tuple(in_flight),
                    timeout=self.config.poll_timeout_s,
                    return_when=asyncio.FIRST_COMPLETED,
                )
                for task in done:
                    record = task.result()
                    if callback is not None:
                        callback(record)
                    # Refill the slot before releasing the finished handle.
                    if queue:
                        admit()
                    del in_flight[task]
        finally:
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

    async def _perform(self, pool: ClientPool, request: Request, index: int) -> CompletionRecord:
        started = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - started) * 1000.0

        options = merge_options(self.config.options, request.options)
        headers = merge_headers(self.config.headers, request.headers)
        try:
            client = pool.client_for(options)
            http_request = client.build_request(
                request.method,
                request.url,
                headers=headers,
                timeout=build_timeout(options),
                **_body_kwargs(request),
            )
            response = await asyncio.wait_for(
                client.send(http_request, follow_redirects=options.follow_redirects),
                timeout=options.timeout_s,
            )
        except asyncio.TimeoutError:
            return CompletionRecord(
                request=request,
                index=index,
                error=f"Operation timed out after {options.timeout_s:g} seconds",
                error_type="timeout",
                elapsed_ms=elapsed(),
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug(f"Transport failure for {request.url}: {exc!r}")
            return CompletionRecord(
                request=request,
                index=index,
                error=str(exc) or exc.__class__.__name__,
                error_type=exc.__class__.__name__,
                elapsed_ms=elapsed(),
            )

        return CompletionRecord(
            request=request,
            index=index,
            status_code=response.status_code,
            body=response.content,
            elapsed_ms=elapsed(),
        )


def _body_kwargs(request: Request) -> dict:
    if request.body is None:
        return {}
    if isinstance(request.body, (bytes, str)):
        return {"content": request.body}
    return {"data": dict(request.body)}
