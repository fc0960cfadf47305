# === NAVMAP v1 ===
# {
#   "module": "VarnishPurge.cli",
#   "purpose": "Typer commands for purging and configuration inspection",
#   "sections": [
#     {"id": "_load_settings", "name": "_load_settings", "anchor": "function-_load_settings", "kind": "function"},
#     {"id": "_run_purge", "name": "_run_purge", "anchor": "function-_run_purge", "kind": "function"},
#     {"id": "purge", "name": "purge", "anchor": "function-purge", "kind": "function"},
#     {"id": "purge_all", "name": "purge_all", "anchor": "function-purge_all", "kind": "function"},
#     {"id": "config_show", "name": "config_show", "anchor": "function-config_show", "kind": "function"},
#     {"id": "config_validate", "name": "config_validate", "anchor": "function-config_validate", "kind": "function"},
#     {"id": "config_schema", "name": "config_schema", "anchor": "function-config_schema", "kind": "function"},
#     {"id": "main", "name": "main", "anchor": "function-main", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Command line interface for purging Varnish servers.

**Usage:**

    # Purge two paths on the configured servers
    varnish-purge purge /catalog/shoes.html /catalog/boots.html -c varnish.yaml

    # Purge everything on an explicit server list
    varnish-purge purge-all -s cache1:6081 -s cache2:6081

    # Inspect configuration
    varnish-purge config show -c varnish.yaml
    varnish-purge config validate -c varnish.yaml
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import typer
from pydantic import ValidationError

from VarnishPurge.config import PurgeSettings, export_config_schema, load_config
from VarnishPurge.errors import ConfigError
from VarnishPurge.logging_config import setup_logging
from VarnishPurge.net.dispatcher import ConcurrencyDispatcher
from VarnishPurge.purge import (
    FLUSH_OK_MESSAGE,
    LoggingAuditLog,
    PurgeOrchestrator,
    SettingsConfigProvider,
    render_failure,
    render_success,
)

__all__ = ["app", "config_app", "main"]

app = typer.Typer(help="Send PURGE requests to Varnish cache servers", no_args_is_help=True)
config_app = typer.Typer(help="Inspect and validate configuration", no_args_is_help=True)
app.add_typer(config_app, name="config")

EXIT_PURGE_FAILED = 1
EXIT_CONFIG_ERROR = 2


def _load_settings(
    config_file: Optional[str],
    servers: Optional[List[str]] = None,
    window: Optional[int] = None,
) -> PurgeSettings:
    overrides: Dict[str, Any] = {}
    if servers:
        overrides["servers"] = servers
    if window is not None:
        overrides["engine"] = {"window_size": window}
    try:
        return load_config(config_file, cli_overrides=overrides)
    except (ValueError, ValidationError) as e:
        typer.secho(f"❌ Error loading config: {e}", fg="red", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)


def _run_purge(settings: PurgeSettings, patterns: Optional[List[str]]) -> None:
    """Purge ``patterns`` (everything when ``None``) on the configured servers."""
    setup_logging(settings.logging)
    if not settings.servers:
        typer.secho("❌ No Varnish servers configured", fg="red", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)

    orchestrator = PurgeOrchestrator(
        SettingsConfigProvider(settings),
        ConcurrencyDispatcher(settings.engine),
        scheme=settings.scheme,
        audit=LoggingAuditLog(),
    )
    try:
        if patterns is None:
            errors = orchestrator.purge_all(settings.servers)
        else:
            errors = orchestrator.purge(settings.servers, patterns)
    except ConfigError as e:
        typer.secho(f"❌ {e}", fg="red", err=True)
        raise typer.Exit(EXIT_CONFIG_ERROR)

    if errors:
        typer.secho(render_failure(errors), fg="red", err=True)
        raise typer.Exit(EXIT_PURGE_FAILED)


@app.command()
def purge(
    patterns: List[str] = typer.Argument(..., help="Path patterns to purge (e.g. /catalog/.*)"),
    server: Optional[List[str]] = typer.Option(
        None, "--server", "-s", help="Varnish server address (repeatable)"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
    window: Optional[int] = typer.Option(
        None, "--window", "-w", help="Maximum simultaneous requests"
    ),
) -> None:
    """Purge path patterns on every server."""
    patterns = list(dict.fromkeys(patterns))
    settings = _load_settings(config_file, server, window)
    _run_purge(settings, patterns)
    typer.echo(render_success(patterns))


@app.command("purge-all")
def purge_all(
    server: Optional[List[str]] = typer.Option(
        None, "--server", "-s", help="Varnish server address (repeatable)"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
) -> None:
    """Purge everything on every server."""
    settings = _load_settings(config_file, server)
    _run_purge(settings, None)
    typer.echo(FLUSH_OK_MESSAGE)


@config_app.command("show")
def config_show(
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file path (YAML/JSON)"
    ),
) -> None:
    """Print the merged configuration after file → environment precedence."""
    settings = _load_settings(config_file)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@config_app.command("validate")
def config_validate(
    config_file: str = typer.Option(..., "--config", "-c", help="Config file path to validate"),
) -> None:
    """Validate a configuration file; exit 2 when it is invalid."""
    settings = _load_settings(config_file)
    typer.secho("✅ Config is valid", fg="green")
    typer.echo(f"   Servers: {', '.join(settings.servers) or '(none)'}")
    typer.echo(f"   Config hash: {settings.config_hash()[:16]}...")


@config_app.command("schema")
def config_schema() -> None:
    """Print the JSON Schema for the configuration file."""
    typer.echo(json.dumps(export_config_schema(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
