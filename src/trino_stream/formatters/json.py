"""JSON formatters: one array of row objects (``json``) or JSON Lines (``jsonl``)."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from trino_stream.formatters.base import registry, to_jsonable

if TYPE_CHECKING:
    from collections.abc import Iterator

    from trino_stream.core.models import QueryResult


def _row_objects(result: QueryResult) -> Iterator[dict[str, Any]]:
    names = [col.name for col in result.columns]
    for row in result.rows:
        yield {name: to_jsonable(val) for name, val in zip(names, row, strict=True)}


class JSONFormatter:
    """One JSON array of row objects keyed by column name.

    Decimals are emitted as strings to keep their exact digits, varbinary
    as base64, temporal values in ISO 8601.
    """

    def __init__(self, compact: bool = False) -> None:
        self.compact = compact

    def format(self, result: QueryResult) -> Iterator[str]:
        rows = list(_row_objects(result))
        if self.compact:
            yield json.dumps(rows)
        else:
            yield json.dumps(rows, indent=2)


class JSONLinesFormatter:
    """One compact JSON object per row, suitable for piping into jq."""

    def format(self, result: QueryResult) -> Iterator[str]:
        for obj in _row_objects(result):
            yield json.dumps(obj)


registry.register("json", JSONFormatter)
registry.register("jsonl", JSONLinesFormatter)
