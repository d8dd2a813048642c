"""Delimited text formatters: ``csv`` (RFC 4180) and ``tsv``."""

from __future__ import annotations

import csv
from io import StringIO
from typing import TYPE_CHECKING

from trino_stream.formatters.base import registry, to_text

if TYPE_CHECKING:
    from collections.abc import Iterator

    from trino_stream.core.models import QueryResult


class CSVFormatter:
    delimiter = ","

    def __init__(self, no_header: bool = False) -> None:
        self.no_header = no_header
        self._buf = StringIO()
        self._writer = csv.writer(
            self._buf, delimiter=self.delimiter, lineterminator=""
        )

    def _line(self, values: list[str]) -> str:
        self._buf.seek(0)
        self._buf.truncate()
        self._writer.writerow(values)
        return self._buf.getvalue()

    def format(self, result: QueryResult) -> Iterator[str]:
        # DDL and other statements without a result set print nothing.
        if not self.no_header and result.columns:
            yield self._line([col.name for col in result.columns])

        for row in result.rows:
            yield self._line([to_text(v) for v in row])


class TSVFormatter(CSVFormatter):
    """Tab separated; fields holding tabs, quotes or newlines are quoted."""

    delimiter = "\t"


registry.register("csv", CSVFormatter)
registry.register("tsv", TSVFormatter)
