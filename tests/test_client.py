from __future__ import annotations

import asyncio
import logging

import httpx

from VarnishPurge.config import TransportOptions
from VarnishPurge.net.client import ClientPool, build_async_client, build_timeout


def test_build_timeout() -> None:
    timeout = build_timeout(TransportOptions(timeout_s=12, connect_timeout_s=3))

    assert timeout.read == 12
    assert timeout.connect == 3


def test_client_pool_keys_on_tls_and_redirect_limit() -> None:
    async def scenario() -> None:
        async with ClientPool(httpx.MockTransport(lambda r: httpx.Response(200))) as pool:
            base = pool.client_for(TransportOptions())
            same = pool.client_for(TransportOptions(timeout_s=1, follow_redirects=False))
            insecure = pool.client_for(TransportOptions(verify_tls=False))
            shallow = pool.client_for(TransportOptions(max_redirects=0))

            assert base is same
            assert len({id(base), id(insecure), id(shallow)}) == 3
            assert shallow.max_redirects == 0
        assert base.is_closed
        assert insecure.is_closed

    asyncio.run(scenario())


def test_client_hooks_log_request_telemetry(caplog) -> None:
    async def scenario() -> httpx.Response:
        client = build_async_client(
            TransportOptions(),
            transport=httpx.MockTransport(lambda r: httpx.Response(204)),
        )
        async with client:
            return await client.request("PURGE", "http://cache.test/x")

    with caplog.at_level(logging.DEBUG, logger="VarnishPurge.net.client"):
        response = asyncio.run(scenario())

    assert response.status_code == 204
    (record,) = [r for r in caplog.records if r.message == "net.request"]
    assert record.extra_fields["method"] == "PURGE"
    assert record.extra_fields["status"] == 204
    assert record.extra_fields["request_id"]
