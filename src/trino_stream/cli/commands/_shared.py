"""Shared CLI plumbing for command modules: client creation and output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from trino_stream.cli.output import get_formatter, write_output
from trino_stream.core.client import TrinoClient
from trino_stream.core.config import ResolvedConfig, load_config, resolve_config

if TYPE_CHECKING:
    import typer

    from trino_stream.core.models import QueryResult

CONNECTION_OPTIONS = (
    "host",
    "port",
    "user",
    "password",
    "catalog",
    "schema",
    "http_scheme",
    "session",
)


def get_resolved_config(ctx: typer.Context, timeout: float | None = None) -> ResolvedConfig:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in CONNECTION_OPTIONS:
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val
    if timeout is not None:
        cli_overrides["timeout"] = timeout

    return resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )


def get_client(ctx: typer.Context, timeout: float | None = None) -> TrinoClient:
    resolved = get_resolved_config(ctx, timeout=timeout)
    ctx.ensure_object(dict)["default_format"] = resolved.default_format
    return TrinoClient(resolved)


def format_options(ctx: typer.Context) -> dict[str, Any]:
    obj = ctx.ensure_object(dict)
    return {
        "format_flag": obj.get("format"),
        "default_format": obj.get("default_format"),
        "compact": obj.get("compact", False),
        "width": obj.get("width", 40),
        "no_header": obj.get("no_header", False),
        "show_types": obj.get("show_types", False),
    }


def output_result(ctx: typer.Context, result: QueryResult) -> None:
    formatter = get_formatter(**format_options(ctx))
    write_output(formatter, result)
