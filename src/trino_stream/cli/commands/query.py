from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Annotated

import typer

from trino_stream.cli.commands._shared import get_client, output_result
from trino_stream.core.exceptions import InputError
from trino_stream.core.exit_codes import ExitCode
from trino_stream.core.query_source import parse_params, resolve_query_source

if TYPE_CHECKING:
    from trino_stream.core.models import QueryResult


def _echo_warnings(result: QueryResult) -> None:
    for warning in result.warnings:
        code = warning.get("warningCode") or {}
        name = code.get("name", "WARNING") if isinstance(code, dict) else "WARNING"
        typer.echo(f"Warning ({name}): {warning.get('message', '')}", err=True)


def _echo_stats(result: QueryResult) -> None:
    typer.echo(f"Query {result.query_id}", err=True)
    if result.info_uri:
        typer.echo(f"  info: {result.info_uri}", err=True)
    stats = result.stats
    if stats is None:
        return
    typer.echo(
        f"  {stats.state or 'UNKNOWN'}, {stats.nodes} nodes, "
        f"splits {stats.completed_splits}/{stats.total_splits}",
        err=True,
    )
    typer.echo(
        f"  elapsed {stats.elapsed_time_millis / 1000:.2f}s, "
        f"cpu {stats.cpu_time_millis / 1000:.2f}s, "
        f"{stats.processed_rows} rows / {stats.processed_bytes} bytes processed",
        err=True,
    )


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    param: Annotated[
        list[str] | None,
        typer.Option(
            "--param",
            help="Positional parameter for a ? marker (repeatable, JSON or text)",
        ),
    ] = None,
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Query timeout in seconds"),
    ] = None,
    stats: Annotated[
        bool,
        typer.Option("--stats", help="Print query id, info URI and statistics to stderr"),
    ] = False,
) -> None:
    """Execute a SQL query from file, inline (-e), or stdin.

    Parameters given with --param are bound to ? markers in order; the
    statement then runs as PREPARE / EXECUTE ... USING / DEALLOCATE.
    """
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if execute is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    try:
        sql = resolve_query_source(inline=execute, file_path=file)
    except InputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(ExitCode.INPUT_ERROR) from exc

    with get_client(ctx, timeout=timeout) as client:
        result = client.execute_query(sql, parse_params(param))

    output_result(ctx, result)
    _echo_warnings(result)
    if stats:
        _echo_stats(result)
