# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.logging_config",
#   "purpose": "Structured JSON logging, secret masking, and log retention",
#   "sections": [
#     {"id": "mask_sensitive_data", "name": "mask_sensitive_data", "anchor": "function-mask_sensitive_data", "kind": "function"},
#     {"id": "generate_correlation_id", "name": "generate_correlation_id", "anchor": "function-generate_correlation_id", "kind": "function"},
#     {"id": "JSONFormatter", "name": "JSONFormatter", "anchor": "class-JSONFormatter", "kind": "class"},
#     {"id": "_compress_old_log", "name": "_compress_old_log", "anchor": "function-_compress_old_log", "kind": "function"},
#     {"id": "_cleanup_logs", "name": "_cleanup_logs", "anchor": "function-_cleanup_logs", "kind": "function"},
#     {"id": "setup_logging", "name": "setup_logging", "anchor": "function-setup_logging", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Structured Logging Utilities

This module centralizes logging setup for VarnishPurge. It provides helpers
for masking sensitive fields, emitting JSON log records, managing correlation
identifiers, and rolling log files to maintain a clean retention window.
"""

from __future__ import annotations

import gzip
import json
import logging
import sys
import uuid
from datetime import datetime, timedelta, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

from .config.models import LoggingConfig

ROOT_LOGGER_NAME = "VarnishPurge"


def mask_sensitive_data(payload: Dict[str, object]) -> Dict[str, object]:
    """Remove secrets from structured payloads prior to logging.

    Examples:
        >>> mask_sensitive_data({"authorization": "Basic abc", "status": "ok"})
        {'authorization': '***masked***', 'status': 'ok'}
    """
    sensitive_keys = {"authorization", "api_key", "apikey", "token", "secret", "password"}
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        if key.lower() in sensitive_keys:
            masked[key] = "***masked***"
        else:
            masked[key] = value
    return masked


def generate_correlation_id() -> str:
    """Create a twelve character identifier linking the log lines of one batch."""
    return uuid.uuid4().hex[:12]


class JSONFormatter(logging.Formatter):
    """Formatter emitting JSON structured logs."""

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        log_obj: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None),
        }
        extra_fields = getattr(record, "extra_fields", None)
        if isinstance(extra_fields, dict):
            log_obj.update(extra_fields)
        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(log_obj), default=str)


def _compress_old_log(path: Path) -> None:
    compressed_path = path.with_suffix(path.suffix + ".gz")
    with path.open("rb") as source, gzip.open(compressed_path, "wb") as target:
        target.write(source.read())
    path.unlink(missing_ok=True)


def _cleanup_logs(log_dir: Path, retention_days: int) -> None:
    """Compress JSONL logs past the retention window and delete stale archives."""
    now = datetime.now(timezone.utc)
    retention_delta = timedelta(days=retention_days)
    for file in log_dir.glob("*.jsonl"):
        mtime = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
        if now - mtime > retention_delta:
            _compress_old_log(file)
    for file in log_dir.glob("*.jsonl.gz"):
        mtime = datetime.fromtimestamp(file.stat().st_mtime, tz=timezone.utc)
        if now - mtime > retention_delta * 2:
            file.unlink(missing_ok=True)


def setup_logging(config: LoggingConfig, log_dir: Optional[Path] = None) -> logging.Logger:
    """Configure console and optional JSONL file handlers.

    Handlers installed by a previous call are replaced, so the function is safe
    to call more than once per process.

    Args:
        config: Logging configuration containing level, size, and retention.
        log_dir: Optional directory override for log file placement.

    Returns:
        The ``VarnishPurge`` package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_varnish_purge_managed", False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    stream_handler._varnish_purge_managed = True  # type: ignore[attr-defined]
    logger.addHandler(stream_handler)

    directory = log_dir or (Path(config.log_dir) if config.log_dir else None)
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)
        _cleanup_logs(directory, config.retention_days)
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        file_handler = RotatingFileHandler(
            directory / f"varnish-purge-{today}.jsonl",
            maxBytes=int(config.max_log_size_mb * 1024 * 1024),
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(JSONFormatter())
        file_handler._varnish_purge_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    logger.propagate = True
    return logger


__all__ = [
    "JSONFormatter",
    "generate_correlation_id",
    "mask_sensitive_data",
    "setup_logging",
]
