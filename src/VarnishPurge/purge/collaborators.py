"""Interfaces the purge layer depends on, plus default implementations.

The orchestrator never reads global state: configuration, user notification,
and audit logging all arrive through these collaborators.
"""

from __future__ import annotations

import logging
from typing import List, Protocol, Sequence, Tuple, runtime_checkable

from ..config.models import PurgeSettings

__all__ = [
    "AUDIT_EVENT_CODE",
    "AuditLog",
    "ConfigProvider",
    "LoggingAuditLog",
    "LoggingNotifier",
    "Notifier",
    "RecordingNotifier",
    "SettingsConfigProvider",
]

AUDIT_EVENT_CODE = "varnish_purge"


@runtime_checkable
class ConfigProvider(Protocol):
    def is_cache_enabled(self) -> bool: ...

    def server_list(self) -> List[str]: ...

    def window_size(self) -> int: ...


@runtime_checkable
class Notifier(Protocol):
    def report_result(self, success: bool, detail: str) -> None: ...


@runtime_checkable
class AuditLog(Protocol):
    def record_purge(self, success: bool, info: str, errors: Sequence[str]) -> None: ...


class SettingsConfigProvider:
    """:class:`ConfigProvider` backed by loaded :class:`PurgeSettings`."""

    def __init__(self, settings: PurgeSettings) -> None:
        self.settings = settings

    def is_cache_enabled(self) -> bool:
        return self.settings.enabled

    def server_list(self) -> List[str]:
        return list(self.settings.servers)

    def window_size(self) -> int:
        return self.settings.engine.window_size


class LoggingNotifier:
    """Report purge outcomes through a logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("VarnishPurge.notify")

    def report_result(self, success: bool, detail: str) -> None:
        if success:
            self.logger.info(detail)
        else:
            self.logger.error(detail)


class RecordingNotifier:
    """Keep outcomes in memory, in the order they were reported."""

    def __init__(self) -> None:
        self.messages: List[Tuple[bool, str]] = []

    def report_result(self, success: bool, detail: str) -> None:
        self.messages.append((success, detail))


class LoggingAuditLog:
    """Emit one structured audit event per purge batch."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("VarnishPurge.audit")

    def record_purge(self, success: bool, info: str, errors: Sequence[str]) -> None:
        self.logger.info(
            "purge audit",
            extra={
                "extra_fields": {
                    "event_code": AUDIT_EVENT_CODE,
                    "action": "purge",
                    "is_success": success,
                    "info": info,
                    "error_message": "\n".join(errors),
                }
            },
        )
