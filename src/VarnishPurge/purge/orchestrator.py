# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.purge.orchestrator",
#   "purpose": "Cartesian fan-out of PURGE requests across servers and patterns",
#   "sections": [
#     {"id": "build_purge_url", "name": "build_purge_url", "anchor": "function-build_purge_url", "kind": "function"},
#     {"id": "PurgeBatch", "name": "PurgeBatch", "anchor": "class-PurgeBatch", "kind": "class"},
#     {"id": "PurgeOrchestrator", "name": "PurgeOrchestrator", "anchor": "class-PurgeOrchestrator", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Fan purge requests out to every Varnish server.

A :class:`PurgeBatch` is the Cartesian product of server addresses and path
patterns. :class:`PurgeOrchestrator` turns one batch into ``PURGE`` requests,
runs them through the :class:`~VarnishPurge.net.dispatcher.ConcurrencyDispatcher`
with a fresh :class:`~VarnishPurge.purge.classifier.ResponseClassifier`, and
returns the collected error messages. An empty list means every server
accepted every purge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..logging_config import generate_correlation_id
from ..net.dispatcher import ConcurrencyDispatcher
from ..net.request import Request, RequestQueue
from .classifier import ErrorAggregator, ResponseClassifier
from .collaborators import AuditLog, ConfigProvider

__all__ = [
    "PURGE_ALL_PATTERN",
    "PURGE_METHOD",
    "PurgeBatch",
    "PurgeOrchestrator",
    "build_purge_url",
]

logger = logging.getLogger(__name__)

PURGE_METHOD = "PURGE"
PURGE_ALL_PATTERN = "/.*"


def build_purge_url(server: str, pattern: str, scheme: str = "http") -> str:
    """Join a server address and a path pattern into a purge target.

    >>> build_purge_url("cache1:6081", "/catalog/shoes.html")
    'http://cache1:6081/catalog/shoes.html'
    """
    base = server.rstrip("/")
    if "://" not in base:
        base = f"{scheme}://{base}"
    return f"{base}/{pattern.lstrip('/')}"


@dataclass(frozen=True)
class PurgeBatch:
    """Servers and path patterns for one invalidation event."""

    servers: Tuple[str, ...]
    patterns: Tuple[str, ...]

    @classmethod
    def of(cls, servers: Iterable[str], patterns: Iterable[str]) -> "PurgeBatch":
        return cls(tuple(servers), tuple(patterns))

    def __len__(self) -> int:
        return len(self.servers) * len(self.patterns)

    def requests(self, scheme: str = "http", method: str = PURGE_METHOD) -> RequestQueue:
        queue = RequestQueue()
        for server in self.servers:
            for pattern in self.patterns:
                queue.add(Request(build_purge_url(server, pattern, scheme), method))
        return queue


class PurgeOrchestrator:
    """Issue purges for path patterns on a set of servers.

    Args:
        config: Supplies the concurrency window for each batch.
        dispatcher: Engine used to execute requests.
        scheme: URL scheme for server entries that carry none.
        audit: Optional audit log notified once per batch.
    """

    def __init__(
        self,
        config: ConfigProvider,
        dispatcher: Optional[ConcurrencyDispatcher] = None,
        *,
        scheme: str = "http",
        audit: Optional[AuditLog] = None,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or ConcurrencyDispatcher()
        self.scheme = scheme
        self.audit = audit

    def purge(self, servers: Iterable[str], patterns: Sequence[str]) -> List[str]:
        """Purge every pattern on every server; return the error messages."""
        batch = PurgeBatch.of(servers, patterns)
        errors = ErrorAggregator()
        classifier = ResponseClassifier(errors)

        correlation_id = generate_correlation_id()
        logger.info(
            f"Purging {len(batch.patterns)} pattern(s) on {len(batch.servers)} server(s)",
            extra={"correlation_id": correlation_id},
        )
        self.dispatcher.execute(
            batch.requests(self.scheme),
            window=self.config.window_size(),
            callback=classifier,
        )

        result = errors.as_list()
        if result:
            logger.warning(
                f"{len(result)} of {len(batch)} purge request(s) failed",
                extra={"correlation_id": correlation_id},
            )
        if self.audit is not None:
            self.audit.record_purge(not result, ", ".join(batch.patterns), result)
        return result

    def purge_all(self, servers: Iterable[str]) -> List[str]:
        """Purge everything on every server."""
        return self.purge(servers, [PURGE_ALL_PATTERN])
