"""
Pytest Configuration

Shared fixtures for hermetic dispatcher and purge tests. Every HTTP exchange
goes through ``httpx.MockTransport``; nothing touches the network.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, List

import httpx
import pytest

from VarnishPurge.config import EngineConfig, PurgeSettings
from VarnishPurge.logging_config import ROOT_LOGGER_NAME
from VarnishPurge.net.dispatcher import ConcurrencyDispatcher
from VarnishPurge.purge import PurgeOrchestrator, SettingsConfigProvider

Handler = Callable[[httpx.Request], Any]


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Iterator[None]:
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_varnish_purge_managed", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def seen_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def make_dispatcher(seen_requests: List[httpx.Request]) -> Callable[..., ConcurrencyDispatcher]:
    """Build a dispatcher whose transport records requests then calls ``handler``."""

    def _factory(handler: Handler, **engine: Any) -> ConcurrencyDispatcher:
        def _recording(request: httpx.Request) -> Any:
            seen_requests.append(request)
            return handler(request)

        return ConcurrencyDispatcher(
            EngineConfig(**engine), transport=httpx.MockTransport(_recording)
        )

    return _factory


@pytest.fixture
def make_orchestrator(
    make_dispatcher: Callable[..., ConcurrencyDispatcher],
) -> Callable[..., PurgeOrchestrator]:
    def _factory(handler: Handler, *, window_size: int = 5, **kwargs: Any) -> PurgeOrchestrator:
        settings = PurgeSettings(engine=EngineConfig(window_size=window_size))
        return PurgeOrchestrator(
            SettingsConfigProvider(settings),
            make_dispatcher(handler, window_size=window_size),
            **kwargs,
        )

    return _factory
