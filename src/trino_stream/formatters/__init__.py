"""Output formatters for trino-stream."""

from trino_stream.formatters.base import Formatter, FormatterRegistry, registry
from trino_stream.formatters.csv import CSVFormatter, TSVFormatter
from trino_stream.formatters.json import JSONFormatter, JSONLinesFormatter
from trino_stream.formatters.table import TableFormatter

__all__ = [
    "CSVFormatter",
    "Formatter",
    "FormatterRegistry",
    "JSONFormatter",
    "JSONLinesFormatter",
    "TSVFormatter",
    "TableFormatter",
    "registry",
]
