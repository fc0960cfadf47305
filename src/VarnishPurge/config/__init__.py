"""
VarnishPurge Configuration Package

Public API for loading, validating, and introspecting purge configuration.

Example:
    from VarnishPurge.config import load_config

    settings = load_config(
        path="varnish.yaml",
        cli_overrides={"engine": {"window_size": 8}},
    )
    settings.servers  # ['cache1:6081', 'cache2:6081']
"""

from .loader import (
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    EngineConfig,
    LoggingConfig,
    PurgeSettings,
    TransportOptions,
)

__all__ = [
    # Models
    "PurgeSettings",
    "EngineConfig",
    "TransportOptions",
    "LoggingConfig",
    # Loading/validation
    "load_config",
    "validate_config_file",
    "export_config_schema",
]
