"""Rich table formatter for QueryResult output."""

from __future__ import annotations

import shutil
from io import StringIO
from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table
from rich.text import Text

from trino_stream.formatters.base import registry, to_text

if TYPE_CHECKING:
    from collections.abc import Iterator

    from trino_stream.core.models import ColumnMeta, QueryResult

_NO_RESULTS = "No results"
_NUMERIC_TYPES = frozenset(
    {"tinyint", "smallint", "integer", "int", "bigint", "real", "double", "decimal"}
)


def _truncate(value: str, width: int) -> str:
    if len(value) <= width:
        return value
    return value[: width - 1] + "…"


def _header(col: ColumnMeta, show_types: bool) -> Text:
    # Text, not markup: column names and values may contain brackets.
    if not show_types:
        return Text(col.name)
    return Text.assemble(col.name, "\n", (col.type_name, "dim"))


def _summary(result: QueryResult) -> str:
    if result.update_count is not None:
        return f"{result.status_message}: {result.update_count} rows"
    if result.columns:
        return _NO_RESULTS
    return result.status_message


class TableFormatter:
    """Boxed table; numeric columns are right aligned.

    ``show_types`` adds each column's Trino type under its name.
    """

    def __init__(self, width: int = 40, show_types: bool = False) -> None:
        self.width = width
        self.show_types = show_types

    def format(self, result: QueryResult) -> Iterator[str]:
        if not result.rows:
            yield _summary(result)
            return

        table = Table(show_edge=True, pad_edge=True)
        for col in result.columns:
            numeric = col.column_type.base in _NUMERIC_TYPES
            table.add_column(
                _header(col, self.show_types),
                no_wrap=True,
                justify="right" if numeric else "left",
            )

        for row in result.rows:
            table.add_row(*(Text(_truncate(to_text(v), self.width)) for v in row))

        buf = StringIO()
        term_width = shutil.get_terminal_size((120, 24)).columns
        console = Console(file=buf, force_terminal=True, width=term_width)
        console.print(table)
        yield buf.getvalue().rstrip("\n")
        yield f"({result.row_count} {'row' if result.row_count == 1 else 'rows'})"


registry.register("table", TableFormatter)
