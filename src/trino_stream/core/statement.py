"""Statement protocol state machine.

The outline of a query is:

- POST the SQL text to ``/v1/statement``
- GET each ``nextUri`` in turn until a response carries no further URI
  (FINISHED) or an ``error`` object (FAILED)
- DELETE the current URI to cancel

StatementClient drives that chain for one Query at a time and hands raw
pages to the cursor. Session headers from every response are folded into
the SessionState before the response's page is returned, so the next
request always carries the latest catalog, schema and transaction.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import requests
import sentry_sdk
import structlog

from trino_stream.core.exceptions import (
    CancellationError,
    ProtocolError,
    QueryFailedError,
    TimeoutError,
)
from trino_stream.core.logging import LogEvent
from trino_stream.core.models import (
    ClientState,
    ColumnMeta,
    QueryError,
    QueryState,
    QueryStats,
    ResponseKind,
    classify_response,
)
from trino_stream.core.retry import RetryPolicy, call_with_retry

if TYPE_CHECKING:
    from collections.abc import Callable

    from trino_stream.core.session import SessionState

STATEMENT_PATH = "/v1/statement"


@dataclass
class ResultPage:
    """Rows of one response, still in wire form."""

    columns: list[ColumnMeta]
    rows: list[list[Any]]
    next_uri: str | None


class Query:
    """One statement execution, owned by the StatementClient that submitted it."""

    def __init__(self, sql: str, deadline: float | None = None) -> None:
        self.sql = sql
        self.deadline = deadline
        self.query_id: str | None = None
        self.info_uri: str | None = None
        self.next_uri: str | None = None
        self.state = QueryState.QUEUED
        self.client_state = ClientState.SUBMITTING
        self.stats = QueryStats()
        self.error: QueryError | None = None
        self.failure: QueryFailedError | None = None
        self.columns: list[ColumnMeta] | None = None
        self.update_type: str | None = None
        self.update_count: int | None = None
        self.warnings: list[dict[str, Any]] = []
        self.cancel_event = threading.Event()
        self.lock = threading.RLock()
        self.pending: deque[ResultPage] = deque()
        # streamed poll response whose body is still unread
        self.in_flight: requests.Response | None = None

    @property
    def is_terminal(self) -> bool:
        return self.client_state.is_terminal

    def transition(self, state: QueryState) -> None:
        # Terminal states are final; later reports cannot move the query back.
        if self.state.is_terminal:
            return
        self.state = state

    def __repr__(self) -> str:
        return (
            f"Query(id={self.query_id}, state={self.state}, "
            f"client_state={self.client_state}, next_uri={self.next_uri})"
        )


def _normalize_sql(sql: str) -> str:
    return " ".join(sql.split())


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class StatementClient:
    """Submit statements and follow their poll chain.

    Args:
        base_url: coordinator URL, e.g. ``https://trino.example.com:8443``.
        session: session state shared with every request of the connection.
        http_session: requests session used for all exchanges.
        retry_policy: policy for transient failures.
        request_timeout: bound for each individual HTTP exchange, seconds.
        query_timeout: optional bound for the whole poll loop, seconds.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionState,
        http_session: requests.Session,
        retry_policy: RetryPolicy | None = None,
        request_timeout: float = 30.0,
        query_timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.http = http_session
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = request_timeout
        self.query_timeout = query_timeout

    @property
    def statement_url(self) -> str:
        return self.base_url + STATEMENT_PATH

    # -- public operations --

    def submit(
        self, sql: str, additional_headers: dict[str, str] | None = None
    ) -> Query:
        """POST ``sql`` and process the first response."""
        log = structlog.get_logger()
        deadline = (
            time.monotonic() + self.query_timeout if self.query_timeout else None
        )
        query = Query(sql, deadline)
        log.debug(
            "submitting query",
            event_id=LogEvent.QUERY_SUBMITTED,
            sql=_normalize_sql(sql),
        )

        def send() -> requests.Response:
            headers = self.session.request_headers()
            headers.update(additional_headers or {})
            return self.http.post(
                self.statement_url,
                data=sql.encode("utf-8"),
                headers=headers,
                timeout=self._timeout_for(query),
            )

        response = self._exchange(query, "POST", self.statement_url, send)
        page = self._process(query, response)
        if page is not None:
            query.pending.append(page)
        log.debug(
            "query accepted",
            event_id=LogEvent.QUERY_SUBMITTED,
            query_id=query.query_id,
            state=query.state,
        )
        return query

    def advance(self, query: Query) -> ResultPage | None:
        """Return the next page carrying rows, or None once FINISHED."""
        if query.client_state is ClientState.CANCELED:
            raise CancellationError(f"Query {query.query_id} was canceled")
        if query.client_state is ClientState.FAILED and query.failure is not None:
            raise query.failure
        if query.pending:
            return query.pending.popleft()

        while query.client_state is ClientState.POLLING:
            self._check_deadline(query)
            uri = query.next_uri
            if uri is None:
                msg = f"Query {query.query_id} is polling without a next URI"
                raise ProtocolError(msg)

            def send(uri: str = uri) -> requests.Response:
                response = self.http.get(
                    uri,
                    headers=self.session.request_headers(),
                    timeout=self._timeout_for(query),
                    stream=True,
                )
                query.in_flight = response
                return response

            try:
                response = self._exchange(query, "GET", uri, send)
                self._read_body(query, response)
            finally:
                query.in_flight = None
            page = self._process(query, response)
            if page is not None:
                return page

        if query.client_state is ClientState.CANCELED:
            raise CancellationError(f"Query {query.query_id} was canceled")
        return None

    def cancel(self, query: Query) -> None:
        """Cancel ``query``. Never raises; local state is CANCELED afterwards.

        A poll whose response body is being read is aborted by closing the
        response. A poll still waiting for response headers is bounded by
        ``request_timeout``; its response is discarded when it arrives.
        """
        log = structlog.get_logger()
        in_flight = query.in_flight
        if in_flight is not None and not query.is_terminal:
            query.cancel_event.set()
            in_flight.close()
        with query.lock:
            if query.is_terminal:
                return
            uri = query.next_uri
            query.cancel_event.set()
            query.client_state = ClientState.CANCELED
            query.state = QueryState.CANCELED
            query.next_uri = None
        log.info(
            "query canceled",
            event_id=LogEvent.QUERY_CANCELED,
            query_id=query.query_id,
        )
        if uri is None:
            return

        try:
            response = self.http.delete(
                uri,
                headers=self.session.request_headers(),
                timeout=self.request_timeout,
            )
        except requests.RequestException as e:
            log.warning(
                "cancel request failed",
                event_id=LogEvent.CANCEL_FAILED,
                query_id=query.query_id,
                error=str(e),
            )
            return
        if response.status_code not in (200, 204):
            log.warning(
                "cancel request rejected",
                event_id=LogEvent.CANCEL_FAILED,
                query_id=query.query_id,
                status_code=response.status_code,
            )

    # -- internals --

    def _timeout_for(self, query: Query) -> float:
        if query.deadline is None:
            return self.request_timeout
        remaining = query.deadline - time.monotonic()
        return max(0.001, min(self.request_timeout, remaining))

    def _deadline_passed(self, query: Query) -> bool:
        return query.deadline is not None and time.monotonic() >= query.deadline

    def _expire(self, query: Query) -> TimeoutError:
        log = structlog.get_logger()
        log.warning(
            "query deadline exceeded",
            event_id=LogEvent.DEADLINE_EXCEEDED,
            query_id=query.query_id,
            timeout=self.query_timeout,
        )
        self.cancel(query)
        return TimeoutError(
            f"Query {query.query_id} exceeded the {self.query_timeout}s deadline"
        )

    def _check_deadline(self, query: Query) -> None:
        if self._deadline_passed(query):
            raise self._expire(query)

    def _exchange(
        self,
        query: Query,
        method: str,
        url: str,
        send: Callable[[], requests.Response],
    ) -> requests.Response:
        description = f"{method} {url}"
        with sentry_sdk.start_span(op="http.client", description=description) as span:
            try:
                response, attempts = call_with_retry(
                    self.retry_policy,
                    send,
                    cancel_event=query.cancel_event,
                    description=description,
                )
            except ProtocolError as e:
                span.set_status("unavailable")
                if self._deadline_passed(query):
                    raise self._expire(query) from e
                raise
            span.set_data("attempts", attempts)
            span.set_data("status_code", response.status_code)
        return response

    def _read_body(self, query: Query, response: requests.Response) -> None:
        try:
            response.content  # noqa: B018
        except (requests.RequestException, OSError, ValueError) as e:
            if query.cancel_event.is_set():
                raise CancellationError(f"Query {query.query_id} was canceled") from e
            msg = f"Failed reading response for query {query.query_id}: {e}"
            raise ProtocolError(msg) from e
        if query.cancel_event.is_set():
            raise CancellationError(f"Query {query.query_id} was canceled")

    def _process(self, query: Query, response: requests.Response) -> ResultPage | None:
        log = structlog.get_logger()
        with query.lock:
            if query.cancel_event.is_set():
                # A cancel raced with this exchange; its response is discarded.
                raise CancellationError(f"Query {query.query_id} was canceled")

            payload = _json_or_none(response)
            if not response.ok and not (
                isinstance(payload, dict) and payload.get("error")
            ):
                body = response.text[:500] if response.text else ""
                msg = f"Unexpected HTTP {response.status_code} from server: {body}"
                raise ProtocolError(msg)
            if not isinstance(payload, dict):
                msg = f"Response is not a JSON object (HTTP {response.status_code})"
                raise ProtocolError(msg)

            self.session.apply_response_headers(response.headers)
            kind = classify_response(payload)
            self._update(query, payload)

            if kind is ResponseKind.FAILED:
                raise self._fail(query, payload["error"])

            rows = payload.get("data") or []
            if not isinstance(rows, list):
                msg = f"Malformed data block for query {query.query_id}"
                raise ProtocolError(msg)
            page_columns = (
                [ColumnMeta.from_wire(c) for c in payload["columns"]]
                if payload.get("columns")
                else query.columns
            )
            if query.columns is None and page_columns is not None:
                query.columns = page_columns
            if rows and page_columns is None:
                msg = f"Query {query.query_id} returned data before column metadata"
                raise ProtocolError(msg)

            if kind is ResponseKind.FINISHED:
                query.client_state = ClientState.FINISHED
                query.transition(QueryState.FINISHED)
                log.debug(
                    "query finished",
                    event_id=LogEvent.QUERY_FINISHED,
                    query_id=query.query_id,
                    processed_rows=query.stats.processed_rows,
                )
            else:
                query.client_state = ClientState.POLLING

            if not rows or page_columns is None:
                return None
            log.debug(
                "page received",
                event_id=LogEvent.PAGE_RECEIVED,
                query_id=query.query_id,
                row_count=len(rows),
            )
            return ResultPage(columns=page_columns, rows=rows, next_uri=query.next_uri)

    def _update(self, query: Query, payload: dict[str, Any]) -> None:
        query_id = payload.get("id")
        if query_id is None:
            raise ProtocolError("Statement response has no query id")
        if query.query_id is None:
            query.query_id = query_id
        elif query.query_id != query_id:
            msg = f"Query id changed from {query.query_id} to {query_id}"
            raise ProtocolError(msg)

        query.info_uri = payload.get("infoUri", query.info_uri)
        query.next_uri = payload.get("nextUri")

        state = payload.get("state")
        stats = payload.get("stats")
        if stats:
            reported = QueryStats.model_validate(stats)
            query.stats = query.stats.merge(reported)
            state = state or reported.state
        if state:
            query.transition(QueryState.parse(state))

        if payload.get("updateType") is not None:
            query.update_type = payload["updateType"]
        if payload.get("updateCount") is not None:
            query.update_count = payload["updateCount"]
        query.warnings.extend(payload.get("warnings") or [])

    def _fail(self, query: Query, error: Any) -> QueryFailedError:
        log = structlog.get_logger()
        if not isinstance(error, dict):
            msg = f"Malformed error object for query {query.query_id}: {error!r}"
            raise ProtocolError(msg)
        query.error = QueryError.model_validate(error)
        query.client_state = ClientState.FAILED
        query.state = QueryState.FAILED
        query.next_uri = None
        query.failure = QueryFailedError(error, query.query_id, stats=query.stats)
        log.info(
            "query failed",
            event_id=LogEvent.QUERY_FAILED,
            query_id=query.query_id,
            error_name=query.error.error_name,
            message=query.error.message,
        )
        return query.failure
