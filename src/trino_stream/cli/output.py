"""Output format selection and TTY auto-detection."""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trino_stream.core.models import QueryResult
    from trino_stream.formatters.base import Formatter


class OutputFormat(StrEnum):
    TABLE = "table"
    JSON = "json"
    JSONL = "jsonl"
    CSV = "csv"
    TSV = "tsv"


def detect_tty() -> bool:
    return sys.stdout.isatty()


def resolve_format(format_flag: str | None, default_format: str | None = None) -> str:
    """Determine the output format.

    Explicit --format wins, then the configured default for a terminal.
    Without either: table for TTY, csv for pipes.
    """
    if format_flag is not None:
        return format_flag
    if not detect_tty():
        return OutputFormat.CSV
    return default_format or OutputFormat.TABLE


def get_formatter(
    format_flag: str | None = None,
    *,
    default_format: str | None = None,
    compact: bool = False,
    width: int = 40,
    no_header: bool = False,
    show_types: bool = False,
) -> Formatter:
    """Build the formatter for the resolved format, passing only its options."""
    # Importing the package populates the registry.
    import trino_stream.formatters  # noqa: F401
    from trino_stream.formatters.base import registry

    fmt_name = resolve_format(format_flag, default_format)
    options: dict[str, dict[str, object]] = {
        OutputFormat.TABLE: {"width": width, "show_types": show_types},
        OutputFormat.JSON: {"compact": compact},
        OutputFormat.CSV: {"no_header": no_header},
        OutputFormat.TSV: {"no_header": no_header},
    }
    return registry.get(fmt_name, **options.get(fmt_name, {}))


def write_output(formatter: Formatter, result: QueryResult) -> None:
    """Write formatted output to stdout."""
    for line in formatter.format(result):
        sys.stdout.write(line + "\n")
