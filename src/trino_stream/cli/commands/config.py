"""Configuration management CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer

from trino_stream.cli.commands._shared import get_resolved_config
from trino_stream.core.config import DEFAULT_CONFIG_PATH, load_config

if TYPE_CHECKING:
    from pathlib import Path

config_app = typer.Typer(help="Configuration management commands")


@config_app.callback(invoke_without_command=True)
def config_callback(ctx: typer.Context) -> None:
    if not ctx.invoked_subcommand:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _mask_password(value: str | None) -> str:
    if value is None:
        return "not set"
    return "***"


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display resolved configuration with source attribution."""
    resolved = get_resolved_config(ctx)
    config_path: Path | None = ctx.obj.get("config_file")
    sources = resolved.sources

    typer.echo("Connection Settings (resolved):")
    connection_fields = [
        ("host", "host", resolved.host),
        ("port", "port", str(resolved.port)),
        ("http_scheme", "http_scheme", resolved.http_scheme),
        ("user", "user", resolved.user),
        ("password", "password", _mask_password(resolved.password)),
        ("catalog", "catalog", resolved.catalog or "not set"),
        ("schema", "schema_name", resolved.schema_name or "not set"),
        ("source", "source", resolved.source),
    ]
    for label, source_key, value in connection_fields:
        source = sources.get(source_key, "default")
        typer.echo(f"  {label}: {value} ({source})")
    if resolved.session_properties:
        pairs = ", ".join(f"{k}={v}" for k, v in resolved.session_properties.items())
        source = sources.get("session_properties", "default")
        typer.echo(f"  session: {pairs} ({source})")

    typer.echo("")
    typer.echo("General:")
    timeout_source = sources.get("default_timeout", "default")
    typer.echo(f"  timeout: {resolved.default_timeout}s ({timeout_source})")
    request_source = sources.get("request_timeout", "default")
    typer.echo(f"  request_timeout: {resolved.request_timeout}s ({request_source})")
    format_source = sources.get("default_format", "default")
    typer.echo(f"  format: {resolved.default_format} ({format_source})")

    typer.echo("")
    if resolved.active_profile:
        typer.echo(f"Active Profile: {resolved.active_profile}")
    else:
        typer.echo("Active Profile: none")

    display_path = config_path or DEFAULT_CONFIG_PATH
    typer.echo(f"Config File: {display_path}")


@config_app.command("profiles")
def config_profiles(ctx: typer.Context) -> None:
    """List available connection profiles."""
    config_path: Path | None = ctx.obj.get("config_file")
    app_config = load_config(config_path)
    active_profile = ctx.obj.get("profile") or app_config.default_profile

    if not app_config.profiles:
        typer.echo("No profiles configured.")
        display_path = config_path or DEFAULT_CONFIG_PATH
        typer.echo(f"Add profiles to: {display_path}")
        return

    typer.echo("Available Profiles:")
    typer.echo("")
    for name, profile in sorted(app_config.profiles.items()):
        is_active = name == active_profile
        marker = "* " if is_active else "  "
        label = " (active)" if is_active else ""
        typer.echo(f"{marker}{name}{label}")

        display_fields = [
            ("host", profile.host),
            ("port", str(profile.port)),
        ]
        if profile.http_scheme != "http":
            display_fields.append(("http_scheme", profile.http_scheme))
        if profile.user:
            display_fields.append(("user", profile.user))
        if profile.catalog:
            display_fields.append(("catalog", profile.catalog))
        if profile.schema_name:
            display_fields.append(("schema", profile.schema_name))

        for field_name, value in display_fields:
            typer.echo(f"      {field_name}: {value}")
        typer.echo("")
