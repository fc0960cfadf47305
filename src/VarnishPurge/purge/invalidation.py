# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.purge.invalidation",
#   "purpose": "Cache-tag clean events resolved to paths and purged with notification",
#   "sections": [
#     {"id": "CacheTag", "name": "CacheTag", "anchor": "class-CacheTag", "kind": "class"},
#     {"id": "UrlResolver", "name": "UrlResolver", "anchor": "class-UrlResolver", "kind": "class"},
#     {"id": "unique_paths", "name": "unique_paths", "anchor": "function-unique_paths", "kind": "function"},
#     {"id": "CacheInvalidator", "name": "CacheInvalidator", "anchor": "class-CacheInvalidator", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Translate cache-clean events into purges.

Content changes arrive as cache tags such as ``catalog_product_100`` or
``cms_page_7``. Each meaningful tag is handed to a :class:`UrlResolver`,
which knows how to find every URL that renders the entity; the resolved URLs
are reduced to unique paths and purged on every configured server. An empty
tag list means the whole cache was cleaned and triggers a full purge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence
from urllib.parse import urlsplit

from .collaborators import ConfigProvider, LoggingNotifier, Notifier
from .orchestrator import PurgeOrchestrator
from .reporting import render_failure, render_success

__all__ = [
    "FLUSH_FAILED_MESSAGE",
    "FLUSH_OK_MESSAGE",
    "CacheInvalidator",
    "CacheTag",
    "UrlResolver",
    "unique_paths",
]

logger = logging.getLogger(__name__)

FLUSH_OK_MESSAGE = "The Varnish cache storage has been flushed."
FLUSH_FAILED_MESSAGE = "Varnish Purge failed"


@dataclass(frozen=True)
class CacheTag:
    """A parsed ``<namespace>_<entity>_<identifier>`` cache tag."""

    namespace: str
    entity: str
    identifier: str

    @classmethod
    def parse(cls, tag: str) -> Optional["CacheTag"]:
        """Parse ``tag``; ``None`` unless it has exactly three fields.

        >>> CacheTag.parse("catalog_product_100")
        CacheTag(namespace='catalog', entity='product', identifier='100')
        >>> CacheTag.parse("config") is None
        True
        """
        fields = tag.split("_")
        if len(fields) != 3:
            return None
        return cls(*fields)


class UrlResolver(Protocol):
    def resolve(self, tag: CacheTag) -> Iterable[str]: ...


def unique_paths(urls: Iterable[str]) -> List[str]:
    """Reduce URLs to their path component, keeping first-seen order."""
    seen: dict[str, None] = {}
    for url in urls:
        path = urlsplit(url).path or "/"
        seen.setdefault(path, None)
    return list(seen)


class CacheInvalidator:
    """Purge the paths affected by a cache-clean event and report the result.

    Outcomes go to ``notifier``; without one they are logged through
    :class:`~VarnishPurge.purge.collaborators.LoggingNotifier`.
    """

    def __init__(
        self,
        orchestrator: PurgeOrchestrator,
        resolver: UrlResolver,
        notifier: Optional[Notifier] = None,
        config: Optional[ConfigProvider] = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.resolver = resolver
        self.notifier = notifier or LoggingNotifier()
        self.config = config or orchestrator.config

    def on_clean_cache(self, tags: Sequence[str]) -> Optional[List[str]]:
        """Handle one cache-clean event.

        Returns:
            The purge errors, or ``None`` when nothing was purged (cache
            disabled, or no tag resolved to a URL).
        """
        if not self.config.is_cache_enabled():
            logger.debug("Varnish cache disabled; ignoring clean event")
            return None

        servers = self.config.server_list()

        if not tags:
            errors = self.orchestrator.purge_all(servers)
            if errors:
                self.notifier.report_result(False, FLUSH_FAILED_MESSAGE)
            else:
                self.notifier.report_result(True, FLUSH_OK_MESSAGE)
            return errors

        paths = unique_paths(self._resolve(tags))
        if not paths:
            logger.debug(f"No purgeable urls for tags {list(tags)}")
            return None

        errors = self.orchestrator.purge(servers, paths)
        if errors:
            self.notifier.report_result(False, render_failure(errors))
        else:
            self.notifier.report_result(True, render_success(paths))
        return errors

    def _resolve(self, tags: Sequence[str]) -> List[str]:
        urls: dict[str, None] = {}
        for raw in tags:
            tag = CacheTag.parse(raw)
            if tag is None:
                continue
            for url in self.resolver.resolve(tag):
                urls.setdefault(url, None)
        return list(urls)
