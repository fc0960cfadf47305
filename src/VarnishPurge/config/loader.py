# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.config.loader",
#   "purpose": "File, environment, and CLI configuration layering",
#   "sections": [
#     {"id": "_read_file", "name": "_read_file", "anchor": "function-_read_file", "kind": "function"},
#     {"id": "_assign_nested", "name": "_assign_nested", "anchor": "function-_assign_nested", "kind": "function"},
#     {"id": "_coerce_env_value", "name": "_coerce_env_value", "anchor": "function-_coerce_env_value", "kind": "function"},
#     {"id": "_merge_env_overrides", "name": "_merge_env_overrides", "anchor": "function-_merge_env_overrides", "kind": "function"},
#     {"id": "_merge_cli_overrides", "name": "_merge_cli_overrides", "anchor": "function-_merge_cli_overrides", "kind": "function"},
#     {"id": "load_config", "name": "load_config", "anchor": "function-load_config", "kind": "function"},
#     {"id": "validate_config_file", "name": "validate_config_file", "anchor": "function-validate_config_file", "kind": "function"},
#     {"id": "export_config_schema", "name": "export_config_schema", "anchor": "function-export_config_schema", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Configuration Loading with File/Env/CLI Precedence

Implements three-level config composition:
1. **File level** (YAML/JSON): base configuration
2. **Environment level**: VARNISH_PURGE_* prefixed variables override file
3. **CLI level**: programmatic overrides win

Environment variables use double-underscore notation:
  VARNISH_PURGE_ENGINE__WINDOW_SIZE=8  →  engine.window_size=8
  VARNISH_PURGE_SERVERS="cache1:6081, cache2:6081"  →  servers=[...]

JSON values are automatically parsed; strings are type-coerced when possible.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from .models import PurgeSettings

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "VARNISH_PURGE_"

# ============================================================================
# Helpers
# ============================================================================


def _read_file(path: str) -> dict[str, Any]:
    """
    Read YAML or JSON config file.

    Args:
        path: File path (suffix determines format: .yaml/.yml or .json)

    Returns:
        Parsed config dictionary

    Raises:
        ValueError: If file cannot be read or parsed
    """
    p = Path(path)
    if not p.exists():
        raise ValueError(f"Config file not found: {path}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e

    suffix = p.suffix.lower()

    if suffix in (".yaml", ".yml"):
        try:
            loaded = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
    elif suffix == ".json":
        try:
            loaded = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        raise ValueError(f"Unsupported file format: {suffix}. Use .yaml or .json")

    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level")
    return loaded


def _assign_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    """Assign ``value`` into ``data`` following a dot-separated path."""
    keys = dotted_key.split(".")
    current = data

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value


def _coerce_env_value(value: str) -> Any:
    """
    Attempt to coerce environment variable string to appropriate type.

    Tries JSON parsing first (handles lists, dicts, bools, numbers).
    Falls back to string if JSON fails.
    """
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    return value


def _merge_env_overrides(data: dict[str, Any], env_prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """Overlay ``<prefix>*`` environment variables onto ``data``."""
    for env_key, env_value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        relative_key = env_key[len(env_prefix) :].lower()
        dotted_key = relative_key.replace("__", ".")
        coerced_value = _coerce_env_value(env_value)

        _assign_nested(data, dotted_key, coerced_value)
        _LOGGER.debug(f"Environment override: {env_key} → {dotted_key} = {coerced_value!r}")

    return data


def _merge_cli_overrides(
    data: dict[str, Any], cli_overrides: Mapping[str, Any] | None
) -> dict[str, Any]:
    """
    Recursively merge CLI overrides into base config dict.

    Later values win (standard dict.update() semantics).
    """
    if not cli_overrides:
        return data

    for key, value in cli_overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key] = _merge_cli_overrides(data[key], value)
        else:
            data[key] = dict(value) if isinstance(value, Mapping) else value
        _LOGGER.debug(f"CLI override: {key} = {value!r}")

    return data


# ============================================================================
# Public API
# ============================================================================


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
) -> PurgeSettings:
    """
    Load PurgeSettings from file, environment, and CLI with proper precedence.

    **Precedence:** file < environment < CLI

    Args:
        path: Path to YAML/JSON config file (optional)
        env_prefix: Environment variable prefix (default: VARNISH_PURGE_)
        cli_overrides: CLI override dict (optional)

    Returns:
        Validated PurgeSettings instance

    Raises:
        ValueError: If config file cannot be read or parsed
        pydantic.ValidationError: If the merged configuration is invalid
    """
    data: dict[str, Any] = {}

    if path:
        try:
            data = _read_file(path)
            _LOGGER.info(f"Loaded config from {path}")
        except ValueError as e:
            _LOGGER.error(f"Failed to load config: {e}")
            raise

    data = _merge_env_overrides(data, env_prefix)
    data = _merge_cli_overrides(data, cli_overrides)

    settings = PurgeSettings.model_validate(data)
    _LOGGER.debug(f"Configuration validated. Config hash: {settings.config_hash()[:8]}...")
    return settings


def validate_config_file(path: str) -> bool:
    """
    Validate a config file, raising on the first problem.

    Useful for the ``config validate`` CLI command.
    """
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    """Export JSON Schema for PurgeSettings (Pydantic v2 format)."""
    return PurgeSettings.model_json_schema()
