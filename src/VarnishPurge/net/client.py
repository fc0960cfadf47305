# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.net.client",
#   "purpose": "Per-batch httpx AsyncClient pool with telemetry event hooks",
#   "sections": [
#     {"id": "build_timeout", "name": "build_timeout", "anchor": "function-build_timeout", "kind": "function"},
#     {"id": "build_async_client", "name": "build_async_client", "anchor": "function-build_async_client", "kind": "function"},
#     {"id": "ClientPool", "name": "ClientPool", "anchor": "class-ClientPool", "kind": "class"},
#     {"id": "_on_request", "name": "_on_request", "anchor": "function-_on_request", "kind": "function"},
#     {"id": "_on_response", "name": "_on_response", "anchor": "function-_on_response", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
HTTPX AsyncClient Factory for the dispatcher.

httpx fixes TLS verification and the redirect hop limit per client, so the
dispatcher keeps one client per ``(verify_tls, max_redirects)`` pair for the
lifetime of a single batch. Everything else (timeouts, redirect following,
headers) is applied per request.

Architecture:
1. build_async_client(options) → configured httpx.AsyncClient
2. Hooks emit net.request telemetry per request at DEBUG level
3. ClientPool opens clients lazily and closes them all when the batch ends
"""

from __future__ import annotations

import logging
import os
import time
from typing import Dict, Optional, Tuple

import httpx

from ..config.models import TransportOptions

__all__ = ["ClientPool", "build_async_client", "build_timeout"]

logger = logging.getLogger(__name__)

ClientKey = Tuple[bool, int]

# ============================================================================
# Client Construction
# ============================================================================


def build_timeout(options: TransportOptions) -> httpx.Timeout:
    """Translate transport options into an httpx timeout."""
    return httpx.Timeout(options.timeout_s, connect=options.connect_timeout_s)


def build_async_client(
    options: TransportOptions,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build a new AsyncClient honouring the client-level transport options."""
    if not options.verify_tls:
        logger.debug("Building HTTP client with TLS verification disabled")

    client = httpx.AsyncClient(
        transport=transport,
        timeout=build_timeout(options),
        verify=options.verify_tls,
        max_redirects=options.max_redirects,
        follow_redirects=options.follow_redirects,
        trust_env=False,
    )
    client.event_hooks["request"] = [_on_request]
    client.event_hooks["response"] = [_on_response]
    return client


class ClientPool:
    """Per-batch cache of AsyncClients keyed by client-level options."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport
        self._clients: Dict[ClientKey, httpx.AsyncClient] = {}

    def client_for(self, options: TransportOptions) -> httpx.AsyncClient:
        key: ClientKey = (options.verify_tls, options.max_redirects)
        client = self._clients.get(key)
        if client is None:
            client = build_async_client(options, transport=self._transport)
            self._clients[key] = client
        return client

    async def aclose(self) -> None:
        clients, self._clients = list(self._clients.values()), {}
        for client in clients:
            await client.aclose()

    async def __aenter__(self) -> "ClientPool":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


# ============================================================================
# Event Hooks (Telemetry)
# ============================================================================


async def _on_request(request: httpx.Request) -> None:
    request.extensions["t0_perf"] = time.perf_counter()
    request.extensions["request_id"] = os.urandom(8).hex()


async def _on_response(response: httpx.Response) -> None:
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        "net.request",
        extra={
            "extra_fields": {
                "method": req.method,
                "url": str(req.url),
                "status": response.status_code,
                "elapsed_ms": round(elapsed_ms, 2),
                "request_id": req.extensions.get("request_id"),
            }
        },
    )
