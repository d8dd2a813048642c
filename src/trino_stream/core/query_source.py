"""Query text and parameter resolution for the CLI.

The SQL text comes from one of three sources:
1. Inline (-e flag), highest priority
2. File path
3. stdin, lowest priority
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from trino_stream.core.exceptions import InputError


def resolve_query_source(
    inline: str | None,
    file_path: str | None,
) -> str:
    """Resolve SQL query from inline, file, or stdin.

    Precedence: inline > file > stdin.
    Raises InputError when no source is available or the text is blank.
    """
    if inline is not None:
        sql = inline
    elif file_path is not None:
        p = Path(file_path)
        if not p.exists():
            msg = (
                f"Query file not found: {file_path}\n"
                "Use -e for inline queries or pipe query via stdin."
            )
            raise InputError(msg)
        sql = p.read_text()
    elif not sys.stdin.isatty():
        sql = sys.stdin.read()
    else:
        msg = "No query provided. Use -e, file path, or pipe to stdin."
        raise InputError(msg)

    sql = sql.strip().rstrip(";").rstrip()
    if not sql:
        raise InputError("Query text is empty")
    return sql


def parse_param(raw: str) -> Any:
    """Interpret one ``--param`` value.

    The value is read as JSON when it parses (numbers, booleans, null,
    arrays, objects, quoted strings); anything else is taken as a plain
    string, so ``--param FRANCE`` and ``--param '"FRANCE"'`` are the same.
    """
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def parse_params(raw_params: list[str] | None) -> list[Any] | None:
    if not raw_params:
        return None
    return [parse_param(raw) for raw in raw_params]
