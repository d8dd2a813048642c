"""Prepared statements and positional parameter binding.

Parameters are never spliced into the user's SQL. The statement is
prepared once under a generated name and executed with the values
rendered as SQL literals in the ``USING`` clause::

    PREPARE st_3f2a... FROM SELECT * FROM nation WHERE regionkey = ?
    EXECUTE st_3f2a... USING 1
    DEALLOCATE PREPARE st_3f2a...

The server registers the statement text in the session through the
``X-Trino-Added-Prepare`` header, and every later request carries it back
in ``X-Trino-Prepared-Statement``.
"""

from __future__ import annotations

import re
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from trino_stream.core.cursor import Cursor
from trino_stream.core.exceptions import InputError, TrinoStreamError
from trino_stream.core.logging import LogEvent
from trino_stream.core.types import to_sql_literal

if TYPE_CHECKING:
    from collections.abc import Sequence

    from trino_stream.core.session import SessionState
    from trino_stream.core.statement import StatementClient

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def generate_statement_name() -> str:
    return f"st_{uuid.uuid4().hex}"


def build_execute_sql(name: str, params: Sequence[Any]) -> str:
    """Render ``EXECUTE name [USING literal, ...]``."""
    if not params:
        return f"EXECUTE {name}"
    literals = ", ".join(to_sql_literal(value) for value in params)
    return f"EXECUTE {name} USING {literals}"


class PreparedStatementManager:
    """Prepare, describe, execute and deallocate named statements."""

    def __init__(self, statement_client: StatementClient, session: SessionState) -> None:
        self._client = statement_client
        self._session = session
        self._statements: dict[str, str] = {}

    @property
    def names(self) -> list[str]:
        return list(self._statements)

    def prepare(self, sql: str, name: str | None = None) -> str:
        name = name or generate_statement_name()
        if not _NAME_RE.match(name):
            raise InputError(f"Invalid prepared statement name: {name!r}")
        self._run(f"PREPARE {name} FROM {sql}")
        self._statements[name] = sql
        log = structlog.get_logger()
        log.debug("statement prepared", event_id=LogEvent.STATEMENT_PREPARED, name=name)
        return name

    def describe_input(self, name: str) -> list[tuple[Any, ...]]:
        """Rows of ``DESCRIBE INPUT``: (position, type) per parameter."""
        self._ensure_prepared(name)
        return self._run(f"DESCRIBE INPUT {name}")

    def describe_output(self, name: str) -> list[tuple[Any, ...]]:
        """Rows of ``DESCRIBE OUTPUT``, one per result column."""
        self._ensure_prepared(name)
        return self._run(f"DESCRIBE OUTPUT {name}")

    def execute(self, name: str, params: Sequence[Any] | None = None) -> Cursor:
        self._ensure_prepared(name)
        sql = build_execute_sql(name, list(params or []))
        query = self._client.submit(sql)
        return Cursor(self._client, query)

    def deallocate(self, name: str) -> None:
        """Drop ``name`` on the server. Failures are logged, not raised."""
        log = structlog.get_logger()
        self._statements.pop(name, None)
        try:
            self._run(f"DEALLOCATE PREPARE {name}")
        except TrinoStreamError as e:
            log.warning(
                "deallocate failed",
                event_id=LogEvent.DEALLOCATE_FAILED,
                name=name,
                error=e.message,
            )
        else:
            log.debug(
                "statement deallocated",
                event_id=LogEvent.STATEMENT_DEALLOCATED,
                name=name,
            )
        finally:
            self._session.forget_prepared_statement(name)

    def deallocate_all(self) -> None:
        for name in list(self._statements):
            self.deallocate(name)

    def _ensure_prepared(self, name: str) -> None:
        if self._session.has_prepared_statement(name):
            return
        sql = self._statements.get(name)
        if sql is None:
            raise InputError(f"Unknown prepared statement: {name}")
        # The session lost it (reset or reconnect); prepare again under the same name.
        log = structlog.get_logger()
        log.info(
            "re-preparing statement",
            event_id=LogEvent.STATEMENT_REPREPARED,
            name=name,
        )
        self._run(f"PREPARE {name} FROM {sql}")

    def _run(self, sql: str) -> list[tuple[Any, ...]]:
        query = self._client.submit(sql)
        with Cursor(self._client, query) as cursor:
            return cursor.fetchall()
