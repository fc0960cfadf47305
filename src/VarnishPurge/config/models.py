# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.config.models",
#   "purpose": "Pydantic v2 settings for transport, engine, logging, and servers",
#   "sections": [
#     {"id": "TransportOptions", "name": "TransportOptions", "anchor": "class-TransportOptions", "kind": "class"},
#     {"id": "EngineConfig", "name": "EngineConfig", "anchor": "class-EngineConfig", "kind": "class"},
#     {"id": "LoggingConfig", "name": "LoggingConfig", "anchor": "class-LoggingConfig", "kind": "class"},
#     {"id": "PurgeSettings", "name": "PurgeSettings", "anchor": "class-PurgeSettings", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""
Pydantic v2 Configuration Models for VarnishPurge

Provides strict, typed configuration for the purge subsystems:
- Transport options applied to every outgoing request (timeouts, redirects, TLS)
- Dispatch engine settings (default headers, concurrency window, poll timeout)
- Logging configuration
- Top-level PurgeSettings as single source of truth (servers, scheme, enabled flag)

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence (see ``loader``).
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_LOGGER = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "VarnishPurge/0.1"

# ============================================================================
# Transport & Engine
# ============================================================================


class TransportOptions(BaseModel):
    """Per-request transport behaviour; requests may override any field."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", frozen=True)

    connect_timeout_s: float = Field(default=30.0, description="Connection timeout in seconds")
    timeout_s: float = Field(default=30.0, description="Total per-request deadline in seconds")
    follow_redirects: bool = Field(default=True, description="Follow 3xx responses")
    max_redirects: int = Field(default=5, description="Maximum redirect hops")
    verify_tls: bool = Field(default=True, description="Verify TLS peer and host")

    @field_validator("connect_timeout_s", "timeout_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("max_redirects")
    @classmethod
    def validate_max_redirects(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_redirects must be >= 0")
        return v


class EngineConfig(BaseModel):
    """Defaults shared by every request a dispatcher issues."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    options: TransportOptions = Field(
        default_factory=TransportOptions, description="Default transport options"
    )
    headers: Dict[str, str] = Field(
        default_factory=lambda: {"User-Agent": DEFAULT_USER_AGENT},
        description="Default request headers",
    )
    window_size: int = Field(default=5, description="Maximum requests in flight")
    poll_timeout_s: float = Field(
        default=10.0, description="Upper bound for one readiness wait in seconds"
    )

    @field_validator("window_size")
    @classmethod
    def validate_window_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("window_size must be >= 1")
        return v

    @field_validator("poll_timeout_s")
    @classmethod
    def validate_poll_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("poll_timeout_s must be > 0")
        return v


# ============================================================================
# Logging
# ============================================================================


class LoggingConfig(BaseModel):
    """Configuration for console and JSONL file logging."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    level: str = Field(default="INFO", description="Log level name")
    log_dir: Optional[str] = Field(
        default=None, description="Directory for JSONL logs (None = console only)"
    )
    max_log_size_mb: float = Field(default=10.0, description="Rotate file after this size")
    retention_days: int = Field(default=14, description="Compress/delete logs older than this")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        normalized = v.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return normalized

    @field_validator("max_log_size_mb")
    @classmethod
    def validate_size(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_log_size_mb must be > 0")
        return v

    @field_validator("retention_days")
    @classmethod
    def validate_retention(cls, v: int) -> int:
        if v < 1:
            raise ValueError("retention_days must be >= 1")
        return v


# ============================================================================
# Top-level Settings
# ============================================================================


class PurgeSettings(BaseModel):
    """Complete configuration for purging a Varnish fleet."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=True, description="Cache purging enabled")
    servers: List[str] = Field(default_factory=list, description="Varnish server addresses")
    scheme: Literal["http", "https"] = Field(default="http", description="Purge URL scheme")
    engine: EngineConfig = Field(default_factory=EngineConfig, description="Dispatch engine")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging")

    @field_validator("servers", mode="before")
    @classmethod
    def split_servers(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, (list, tuple)):
            return [str(item).strip() for item in v if str(item).strip()]
        return v

    @model_validator(mode="after")
    def warn_on_unverified_tls(self) -> "PurgeSettings":
        if self.scheme == "https" and not self.engine.options.verify_tls:
            _LOGGER.warning("TLS verification is disabled for purge requests")
        return self

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
