"""
Configuration Loading Tests

Covers the file < environment < CLI precedence, server list normalisation,
and the validation errors raised for malformed input.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from VarnishPurge.config import (
    EngineConfig,
    LoggingConfig,
    PurgeSettings,
    TransportOptions,
    export_config_schema,
    load_config,
    validate_config_file,
)
from VarnishPurge.config.models import DEFAULT_USER_AGENT


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("VARNISH_PURGE_"):
            monkeypatch.delenv(key, raising=False)


def _write_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "varnish.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_default_settings(self) -> None:
        settings = load_config()

        assert settings.enabled is True
        assert settings.servers == []
        assert settings.scheme == "http"
        assert settings.engine.window_size == 5
        assert settings.engine.poll_timeout_s == 10.0
        assert settings.engine.headers == {"User-Agent": DEFAULT_USER_AGENT}
        assert settings.engine.options.timeout_s == 30.0
        assert settings.engine.options.verify_tls is True
        assert settings.logging.level == "INFO"

    def test_servers_accept_comma_separated_string(self) -> None:
        settings = PurgeSettings(servers=" cache1:6081, ,cache2:6081 ")

        assert settings.servers == ["cache1:6081", "cache2:6081"]


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [{"timeout_s": 0}, {"connect_timeout_s": -1}, {"max_redirects": -1}],
    )
    def test_transport_option_bounds(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            TransportOptions(**kwargs)

    def test_transport_options_are_frozen(self) -> None:
        options = TransportOptions()

        with pytest.raises(ValidationError):
            options.timeout_s = 5  # type: ignore[misc]

    @pytest.mark.parametrize("kwargs", [{"window_size": 0}, {"poll_timeout_s": 0}])
    def test_engine_bounds(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            EngineConfig(**kwargs)

    def test_log_level_is_normalised(self) -> None:
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_unknown_keys_are_rejected(self) -> None:
        with pytest.raises(ValidationError):
            PurgeSettings.model_validate({"servers": ["c1"], "retries": 3})

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(ValidationError):
            PurgeSettings(scheme="ftp")

    def test_unverified_https_warns(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="VarnishPurge.config.models"):
            PurgeSettings(
                scheme="https",
                engine=EngineConfig(options=TransportOptions(verify_tls=False)),
            )

        assert any("TLS verification is disabled" in r.message for r in caplog.records)


class TestFileLoading:
    def test_yaml_file(self, tmp_path: Path) -> None:
        path = _write_yaml(
            tmp_path,
            "servers:\n  - cache1:6081\n  - cache2:6081\n"
            "engine:\n  window_size: 8\n  options:\n    timeout_s: 5\n",
        )

        settings = load_config(str(path))

        assert settings.servers == ["cache1:6081", "cache2:6081"]
        assert settings.engine.window_size == 8
        assert settings.engine.options.timeout_s == 5.0

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "varnish.json"
        path.write_text(json.dumps({"servers": "c1,c2", "scheme": "https"}), encoding="utf-8")

        settings = load_config(str(path))

        assert settings.servers == ["c1", "c2"]
        assert settings.scheme == "https"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="not found"):
            load_config(str(tmp_path / "absent.yaml"))

    def test_unsupported_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "varnish.toml"
        path.write_text("servers = []", encoding="utf-8")

        with pytest.raises(ValueError, match="Unsupported file format"):
            load_config(str(path))

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = _write_yaml(tmp_path, "- cache1\n- cache2\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_validate_config_file(self, tmp_path: Path) -> None:
        good = _write_yaml(tmp_path, "servers: [cache1]\n")

        assert validate_config_file(str(good)) is True


class TestPrecedence:
    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write_yaml(tmp_path, "servers: [cache1]\nengine:\n  window_size: 3\n")
        monkeypatch.setenv("VARNISH_PURGE_ENGINE__WINDOW_SIZE", "7")
        monkeypatch.setenv("VARNISH_PURGE_SERVERS", "cache8:6081, cache9:6081")

        settings = load_config(str(path))

        assert settings.engine.window_size == 7
        assert settings.servers == ["cache8:6081", "cache9:6081"]

    def test_env_booleans(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VARNISH_PURGE_ENABLED", "false")
        monkeypatch.setenv("VARNISH_PURGE_ENGINE__OPTIONS__VERIFY_TLS", "False")

        settings = load_config()

        assert settings.enabled is False
        assert settings.engine.options.verify_tls is False

    def test_cli_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VARNISH_PURGE_ENGINE__WINDOW_SIZE", "7")
        monkeypatch.setenv("VARNISH_PURGE_ENGINE__POLL_TIMEOUT_S", "2.5")

        settings = load_config(cli_overrides={"engine": {"window_size": 11}})

        assert settings.engine.window_size == 11
        assert settings.engine.poll_timeout_s == 2.5

    def test_custom_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PURGE_TEST_SCHEME", "https")

        assert load_config(env_prefix="PURGE_TEST_").scheme == "https"


class TestIntrospection:
    def test_config_hash_is_stable(self) -> None:
        first = PurgeSettings(servers=["c1", "c2"])
        second = PurgeSettings(servers="c1,c2")
        third = PurgeSettings(servers=["c2", "c1"])

        assert first.config_hash() == second.config_hash()
        assert first.config_hash() != third.config_hash()
        assert len(first.config_hash()) == 64

    def test_schema_export(self) -> None:
        schema = export_config_schema()

        assert schema["title"] == "PurgeSettings"
        assert {"servers", "engine", "logging", "scheme", "enabled"} <= set(schema["properties"])
