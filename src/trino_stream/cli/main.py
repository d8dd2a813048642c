"""trino-stream main entry point and command registration."""

from __future__ import annotations

import atexit
from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from trino_stream.__about__ import __version__
from trino_stream.cli.commands.config import config_app
from trino_stream.cli.commands.query import query_command
from trino_stream.cli.output import OutputFormat  # noqa: TC001
from trino_stream.core.exceptions import TrinoStreamError
from trino_stream.core.exit_codes import ExitCode
from trino_stream.core.logging import setup_logging
from trino_stream.core.monitoring import setup_sentry

app = typer.Typer(
    help="trino-stream - query Trino over the HTTP statement protocol",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.command("query")(query_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"trino-stream {__version__}")
        raise typer.Exit()


def parse_session_options(values: list[str] | None) -> dict[str, str] | None:
    if not values:
        return None
    properties: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        name = name.strip()
        if not sep or not name:
            msg = f"expected name=value, got {item!r}"
            raise typer.BadParameter(msg, param_hint="--session")
        properties[name] = value
    return properties


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    log_json: Annotated[
        bool,
        typer.Option("--log-json", help="Write logs to stderr as JSON lines"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", help="Trino coordinator host"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Trino coordinator port"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password (requires https)"),
    ] = None,
    catalog: Annotated[
        str | None,
        typer.Option("--catalog", "-c", help="Default catalog"),
    ] = None,
    schema: Annotated[
        str | None,
        typer.Option("--schema", "-s", help="Default schema"),
    ] = None,
    http_scheme: Annotated[
        str | None,
        typer.Option("--http-scheme", help="http or https"),
    ] = None,
    session: Annotated[
        list[str] | None,
        typer.Option("--session", help="Session property name=value (repeatable)"),
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="Connection DSN (trino://user@host:port/catalog/schema)"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    format: Annotated[
        OutputFormat | None,
        typer.Option("--format", "-f", help="Output format: table|json|jsonl|csv|tsv"),
    ] = None,
    table: Annotated[
        bool,
        typer.Option("--table", help="Shorthand for --format table"),
    ] = False,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
    width: Annotated[
        int,
        typer.Option("--width", help="Column width for table format"),
    ] = 40,
    no_header: Annotated[
        bool,
        typer.Option("--no-header", help="Suppress header row in CSV/TSV output"),
    ] = False,
    types: Annotated[
        bool,
        typer.Option("--types", help="Show column types in table headers"),
    ] = False,
) -> None:
    """trino-stream - query Trino over the HTTP statement protocol."""
    setup_logging(verbose, json_logs=log_json)
    setup_sentry()

    transaction = sentry_sdk.start_transaction(
        op="cli", name=ctx.invoked_subcommand or "trino-stream"
    )
    transaction.__enter__()

    def cleanup() -> None:
        transaction.__exit__(None, None, None)
        sentry_sdk.flush(timeout=2)

    atexit.register(cleanup)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["profile"] = profile
    ctx.obj["host"] = host
    ctx.obj["port"] = port
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["catalog"] = catalog
    ctx.obj["schema"] = schema
    ctx.obj["http_scheme"] = http_scheme
    ctx.obj["session"] = parse_session_options(session)
    ctx.obj["dsn"] = dsn
    ctx.obj["config_file"] = config_file

    fmt = "table" if table else (format.value if format else None)
    ctx.obj["format"] = fmt
    ctx.obj["compact"] = compact
    ctx.obj["width"] = width
    ctx.obj["no_header"] = no_header
    ctx.obj["show_types"] = types


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except TrinoStreamError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(ExitCode.INTERRUPTED) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(ExitCode.GENERAL_ERROR) from None
