"""Lazy, forward-only result stream over a statement's poll chain."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Any, cast

import structlog

from trino_stream.core.exceptions import CancellationError, ProtocolError
from trino_stream.core.logging import LogEvent
from trino_stream.core.types import RowDecoder

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from trino_stream.core.models import ColumnMeta, QueryState, QueryStats
    from trino_stream.core.statement import Query, StatementClient


class Cursor:
    """Rows of one query, fetched page by page as they are consumed.

    Pages are pulled from the server only when the buffered rows run out,
    and each row is decoded when it is handed out. The cursor cannot be
    rewound. Closing it before the last row cancels the query on the
    server.
    """

    arraysize = 1

    def __init__(
        self,
        statement_client: StatementClient,
        query: Query,
        on_close: list[Callable[[], None]] | None = None,
    ) -> None:
        self._client = statement_client
        self._query = query
        self._on_close = list(on_close or [])
        self._columns: list[ColumnMeta] | None = None
        self._decoder: RowDecoder | None = None
        self._rows: deque[list[Any]] = deque()
        self._rownumber = 0
        self._exhausted = False
        self._closed = False

    def __enter__(self) -> Cursor:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[tuple[Any, ...]]:
        return self

    def __next__(self) -> tuple[Any, ...]:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    # -- metadata --

    @property
    def columns(self) -> list[ColumnMeta]:
        """Result columns; waits for the first page that declares them."""
        self._ensure_open()
        if self._columns is None and self._query.columns is not None:
            self._bind(self._query.columns)
        if self._columns is None:
            self._fill()
        return list(self._columns or [])

    @property
    def description(self) -> list[tuple[Any, ...]] | None:
        columns = self.columns
        if not columns:
            return None
        return [
            (
                column.name,
                column.type_name,
                None,
                None,
                column.column_type.precision,
                column.column_type.scale,
                None,
            )
            for column in columns
        ]

    @property
    def query_id(self) -> str | None:
        return self._query.query_id

    @property
    def info_uri(self) -> str | None:
        return self._query.info_uri

    @property
    def stats(self) -> QueryStats:
        return self._query.stats

    @property
    def state(self) -> QueryState:
        return self._query.state

    @property
    def update_type(self) -> str | None:
        return self._query.update_type

    @property
    def update_count(self) -> int | None:
        return self._query.update_count

    @property
    def warnings(self) -> list[dict[str, Any]]:
        return list(self._query.warnings)

    @property
    def rownumber(self) -> int:
        """Number of rows handed out so far."""
        return self._rownumber

    @property
    def closed(self) -> bool:
        return self._closed

    # -- fetching --

    def has_next(self) -> bool:
        self._ensure_open()
        return self._fill()

    def fetchone(self) -> tuple[Any, ...] | None:
        if not self.has_next():
            return None
        raw = self._rows.popleft()
        row = cast("RowDecoder", self._decoder).decode(raw)
        self._rownumber += 1
        return row

    def fetchmany(self, size: int | None = None) -> list[tuple[Any, ...]]:
        size = self.arraysize if size is None else size
        rows: list[tuple[Any, ...]] = []
        while len(rows) < size:
            row = self.fetchone()
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(self) -> list[tuple[Any, ...]]:
        return list(self)

    # -- lifecycle --

    def add_close_callback(self, callback: Callable[[], None]) -> None:
        self._on_close.append(callback)

    def cancel(self) -> None:
        """Cancel the query; buffered rows are discarded."""
        self._rows.clear()
        self._client.cancel(self._query)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._rows.clear()
        try:
            if not self._query.is_terminal:
                self._client.cancel(self._query)
        finally:
            for callback in self._on_close:
                callback()
            log = structlog.get_logger()
            log.debug(
                "cursor closed",
                event_id=LogEvent.CURSOR_CLOSED,
                query_id=self._query.query_id,
                rows=self._rownumber,
            )

    # -- internals --

    def _ensure_open(self) -> None:
        if self._closed:
            raise CancellationError("Cursor is closed")

    def _bind(self, columns: list[ColumnMeta]) -> None:
        if self._columns is None:
            self._columns = list(columns)
            self._decoder = RowDecoder(self._columns)
        elif list(columns) != self._columns:
            msg = f"Columns changed mid-stream for query {self._query.query_id}"
            raise ProtocolError(msg)

    def _fill(self) -> bool:
        while not self._rows:
            if self._exhausted:
                return False
            page = self._client.advance(self._query)
            if page is None:
                self._exhausted = True
                if self._columns is None and self._query.columns is not None:
                    self._bind(self._query.columns)
                return False
            self._bind(page.columns)
            self._rows.extend(page.rows)
        return True
