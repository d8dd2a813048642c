"""Query result models for trino-stream.

Pydantic models for column metadata, query statistics, server error
payloads and materialised query results, plus the enums describing where
a query is in its lifecycle.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from trino_stream.core.exceptions import ProtocolError
from trino_stream.core.types import ColumnType, parse_type_signature


class QueryState(StrEnum):
    """Server-side query state as reported in ``stats.state``."""

    QUEUED = "QUEUED"
    WAITING_FOR_RESOURCES = "WAITING_FOR_RESOURCES"
    DISPATCHING = "DISPATCHING"
    PLANNING = "PLANNING"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    FINISHING = "FINISHING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in (QueryState.FINISHED, QueryState.FAILED, QueryState.CANCELED)

    @classmethod
    def parse(cls, value: str) -> QueryState:
        try:
            return cls(value)
        except ValueError:
            raise ProtocolError(f"Unknown query state: {value!r}") from None


class ClientState(StrEnum):
    """Where the statement client is in the poll chain."""

    SUBMITTING = "SUBMITTING"
    POLLING = "POLLING"
    FINISHED = "FINISHED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self in (ClientState.FINISHED, ClientState.FAILED, ClientState.CANCELED)


class ResponseKind(StrEnum):
    """Shape of one statement response, decided by which fields are present."""

    SUBMITTED = "SUBMITTED"
    DATA_PAGE = "DATA_PAGE"
    FINISHED = "FINISHED"
    FAILED = "FAILED"


def classify_response(payload: dict[str, Any]) -> ResponseKind:
    """Decide the response variant. ``error`` wins over everything else."""
    if payload.get("error"):
        return ResponseKind.FAILED
    if payload.get("nextUri") is None:
        return ResponseKind.FINISHED
    if payload.get("columns") or payload.get("data"):
        return ResponseKind.DATA_PAGE
    return ResponseKind.SUBMITTED


class ColumnMeta(BaseModel):
    """Metadata for a single result column."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str
    type_name: str
    column_type: ColumnType

    @classmethod
    def from_wire(cls, column: dict[str, Any]) -> ColumnMeta:
        try:
            name = column["name"]
            type_name = column["type"]
        except (KeyError, TypeError) as e:
            raise ProtocolError(f"Malformed column entry: {column!r}", e) from e
        return cls(
            name=name,
            type_name=type_name,
            column_type=parse_type_signature(type_name),
        )


class QueryStats(BaseModel):
    """Statistics reported with each statement response.

    Only the counters the client reasons about are typed; everything else
    the server sends is kept as extra fields.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    state: str | None = None
    queued: bool = False
    scheduled: bool = False
    nodes: int = 0
    total_splits: int = Field(default=0, alias="totalSplits")
    completed_splits: int = Field(default=0, alias="completedSplits")
    processed_rows: int = Field(default=0, alias="processedRows")
    processed_bytes: int = Field(default=0, alias="processedBytes")
    elapsed_time_millis: int = Field(default=0, alias="elapsedTimeMillis")
    cpu_time_millis: int = Field(default=0, alias="cpuTimeMillis")
    wall_time_millis: int = Field(default=0, alias="wallTimeMillis")
    queued_time_millis: int = Field(default=0, alias="queuedTimeMillis")
    peak_memory_bytes: int = Field(default=0, alias="peakMemoryBytes")

    def merge(self, newer: QueryStats) -> QueryStats:
        """Combine with a later report; counters never go backwards."""
        merged = newer.model_copy()
        for name in (
            "total_splits",
            "completed_splits",
            "processed_rows",
            "processed_bytes",
            "elapsed_time_millis",
            "cpu_time_millis",
            "wall_time_millis",
            "queued_time_millis",
            "peak_memory_bytes",
        ):
            setattr(merged, name, max(getattr(self, name), getattr(newer, name)))
        return merged


class QueryError(BaseModel):
    """The ``error`` object of a failed statement response."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    message: str = ""
    error_code: int | None = Field(default=None, alias="errorCode")
    error_name: str | None = Field(default=None, alias="errorName")
    error_type: str | None = Field(default=None, alias="errorType")
    sql_state: str | None = Field(default=None, alias="sqlState")
    failure_info: dict[str, Any] | None = Field(default=None, alias="failureInfo")


class QueryResult(BaseModel):
    """Fully materialised result of a SQL query execution."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[ColumnMeta]
    rows: list[tuple[Any, ...]]
    row_count: int
    status_message: str
    query_id: str | None = None
    update_count: int | None = None
    info_uri: str | None = None
    stats: QueryStats | None = None
    warnings: list[dict[str, Any]] = []
