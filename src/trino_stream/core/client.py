"""Trino client for trino-stream.

Wires the session state, statement client, cursor and prepared statement
manager into one connection object. Queries stream through a Cursor;
``execute_query`` materialises the whole result for the CLI.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import requests
import sentry_sdk
import structlog
from requests.auth import HTTPBasicAuth

from trino_stream.core.cursor import Cursor
from trino_stream.core.exceptions import ConfigError, InputError
from trino_stream.core.logging import LogEvent
from trino_stream.core.models import QueryResult
from trino_stream.core.prepare import PreparedStatementManager
from trino_stream.core.retry import RetryPolicy
from trino_stream.core.session import SessionState
from trino_stream.core.statement import StatementClient

if TYPE_CHECKING:
    from collections.abc import Sequence

    from trino_stream.core.config import ResolvedConfig


class TrinoClient:
    """Connection to one Trino coordinator.

    One query at a time: a cursor should be exhausted or closed before the
    next statement is issued on the same client.
    """

    def __init__(
        self,
        config: ResolvedConfig,
        http_session: requests.Session | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.config = config
        self.session = SessionState(
            user=config.user,
            source=config.source,
            catalog=config.catalog,
            schema=config.schema_name,
            time_zone=config.time_zone,
            client_tags=list(config.client_tags),
            properties=dict(config.session_properties),
        )
        self._http = http_session or self._create_http_session()
        self._owns_http = http_session is None
        self.statements = StatementClient(
            config.base_url,
            self.session,
            self._http,
            retry_policy=retry_policy or RetryPolicy(max_attempts=config.max_attempts),
            request_timeout=config.request_timeout,
            query_timeout=config.default_timeout or None,
        )
        self.prepared = PreparedStatementManager(self.statements, self.session)

    def __enter__(self) -> TrinoClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _create_http_session(self) -> requests.Session:
        http = requests.Session()
        http.verify = self.config.verify
        if self.config.password:
            if self.config.http_scheme != "https":
                msg = "Password authentication requires http_scheme 'https'"
                raise ConfigError(msg)
            http.auth = HTTPBasicAuth(self.config.user, self.config.password)
        return http

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> Cursor:
        """Run ``sql`` and return a cursor over its rows.

        With ``params`` the statement is prepared, executed with the values
        bound positionally to its ``?`` markers, and deallocated when the
        cursor is closed.
        """
        if params is None:
            query = self.statements.submit(sql)
            return Cursor(self.statements, query)

        if isinstance(params, (str, bytes)):
            raise InputError("Query parameters must be a sequence of values")
        name = self.prepared.prepare(sql)
        try:
            cursor = self.prepared.execute(name, params)
        except Exception:
            self.prepared.deallocate(name)
            raise
        cursor.add_close_callback(lambda: self.prepared.deallocate(name))
        return cursor

    def execute_query(self, sql: str, params: Sequence[Any] | None = None) -> QueryResult:
        """Execute SQL and return a QueryResult."""
        log = structlog.get_logger()
        with sentry_sdk.start_span(op="db.query", description=" ".join(sql.split())[:200]) as span:
            with self.execute(sql, params) as cursor:
                columns = cursor.columns
                rows = cursor.fetchall()
                span.set_data("query_id", cursor.query_id)
                span.set_data("row_count", len(rows))
                result = QueryResult(
                    columns=columns,
                    rows=rows,
                    row_count=len(rows),
                    status_message=cursor.update_type or "SELECT",
                    query_id=cursor.query_id,
                    update_count=cursor.update_count,
                    info_uri=cursor.info_uri,
                    stats=cursor.stats,
                    warnings=cursor.warnings,
                )
        log.debug(
            "query complete",
            event_id=LogEvent.QUERY_FINISHED,
            query_id=result.query_id,
            rows=result.row_count,
        )
        return result

    def execute_scalar(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """First column of the first row, or None for an empty result."""
        with self.execute(sql, params) as cursor:
            row = cursor.fetchone()
        return None if row is None else row[0]

    def execute_statement(self, sql: str, params: Sequence[Any] | None = None) -> int | None:
        """Run a statement for its effect and return the update count."""
        with self.execute(sql, params) as cursor:
            for _ in cursor:
                pass
            return cursor.update_count

    def begin(self) -> None:
        self.execute_statement("START TRANSACTION")

    def commit(self) -> None:
        self.execute_statement("COMMIT")

    def rollback(self) -> None:
        self.execute_statement("ROLLBACK")

    @property
    def in_transaction(self) -> bool:
        return self.session.transaction_id is not None

    def reset_session(self) -> None:
        """Forget server-derived session state, as after a reconnect."""
        self.session.reset()

    def close(self) -> None:
        """Deallocate prepared statements and release the HTTP session."""
        try:
            self.prepared.deallocate_all()
        finally:
            if self._owns_http:
                self._http.close()
