"""
Purge layer for VarnishPurge.

Builds PURGE fan-outs over the dispatcher, classifies each completion, and
turns cache-clean events into purges with user-facing reports.
"""

from .classifier import ACCEPTED_STATUSES, ErrorAggregator, ResponseClassifier
from .collaborators import (
    AuditLog,
    ConfigProvider,
    LoggingAuditLog,
    LoggingNotifier,
    Notifier,
    RecordingNotifier,
    SettingsConfigProvider,
)
from .invalidation import (
    FLUSH_FAILED_MESSAGE,
    FLUSH_OK_MESSAGE,
    CacheInvalidator,
    CacheTag,
    UrlResolver,
    unique_paths,
)
from .orchestrator import (
    PURGE_ALL_PATTERN,
    PURGE_METHOD,
    PurgeBatch,
    PurgeOrchestrator,
    build_purge_url,
)
from .reporting import render_failure, render_success, summarize_paths

__all__ = [
    # Classification
    "ACCEPTED_STATUSES",
    "ErrorAggregator",
    "ResponseClassifier",
    # Collaborators
    "AuditLog",
    "ConfigProvider",
    "Notifier",
    "LoggingAuditLog",
    "LoggingNotifier",
    "RecordingNotifier",
    "SettingsConfigProvider",
    # Orchestration
    "PURGE_ALL_PATTERN",
    "PURGE_METHOD",
    "PurgeBatch",
    "PurgeOrchestrator",
    "build_purge_url",
    # Invalidation
    "FLUSH_FAILED_MESSAGE",
    "FLUSH_OK_MESSAGE",
    "CacheInvalidator",
    "CacheTag",
    "UrlResolver",
    "unique_paths",
    # Reporting
    "render_failure",
    "render_success",
    "summarize_paths",
]
