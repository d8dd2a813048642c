"""Session state carried across requests on one connection.

The server never stores client session state: catalog, schema, session
properties, the transaction id and prepared statements travel as request
headers and are changed through response headers. SessionState holds
those values for one connection; ``request_headers()`` renders them for
the next request and ``apply_response_headers()`` is the single place where
a response mutates them.
"""

from __future__ import annotations

import threading
import urllib.parse
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from trino_stream.__about__ import __version__
from trino_stream.core.logging import LogEvent

if TYPE_CHECKING:
    from collections.abc import Mapping

CLIENT_NAME = "trino-stream"
NO_TRANSACTION = "NONE"

HEADER_USER = "X-Trino-User"
HEADER_SOURCE = "X-Trino-Source"
HEADER_CATALOG = "X-Trino-Catalog"
HEADER_SCHEMA = "X-Trino-Schema"
HEADER_TIME_ZONE = "X-Trino-Time-Zone"
HEADER_CLIENT_TAGS = "X-Trino-Client-Tags"
HEADER_CLIENT_CAPABILITIES = "X-Trino-Client-Capabilities"
HEADER_SESSION = "X-Trino-Session"
HEADER_TRANSACTION = "X-Trino-Transaction-Id"
HEADER_PREPARED_STATEMENT = "X-Trino-Prepared-Statement"

HEADER_SET_CATALOG = "X-Trino-Set-Catalog"
HEADER_SET_SCHEMA = "X-Trino-Set-Schema"
HEADER_SET_SESSION = "X-Trino-Set-Session"
HEADER_CLEAR_SESSION = "X-Trino-Clear-Session"
HEADER_STARTED_TRANSACTION = "X-Trino-Started-Transaction-Id"
HEADER_CLEAR_TRANSACTION = "X-Trino-Clear-Transaction-Id"
HEADER_ADDED_PREPARE = "X-Trino-Added-Prepare"
HEADER_DEALLOCATED_PREPARE = "X-Trino-Deallocated-Prepare"


def _split_values(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _split_pairs(raw: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in _split_values(raw):
        key, sep, value = item.partition("=")
        if not sep:
            continue
        pairs.append((key.strip(), urllib.parse.unquote_plus(value.strip())))
    return pairs


@dataclass
class SessionState:
    """Per-connection session values. Thread-safe; one owner per connection."""

    user: str
    source: str = CLIENT_NAME
    catalog: str | None = None
    schema: str | None = None
    time_zone: str | None = None
    client_tags: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    transaction_id: str | None = None
    prepared_statements: dict[str, str] = field(default_factory=dict)
    extra_headers: dict[str, str] = field(default_factory=dict)
    _lock: threading.RLock = field(
        default_factory=threading.RLock, init=False, repr=False, compare=False
    )

    def request_headers(self) -> dict[str, str]:
        """Render the headers for the next request."""
        with self._lock:
            headers: dict[str, str] = {
                HEADER_USER: self.user,
                HEADER_SOURCE: self.source,
                HEADER_CLIENT_CAPABILITIES: "PARAMETRIC_DATETIME",
                HEADER_TRANSACTION: self.transaction_id or NO_TRANSACTION,
                "User-Agent": f"{CLIENT_NAME}/{__version__}",
            }
            if self.catalog:
                headers[HEADER_CATALOG] = self.catalog
            if self.schema:
                headers[HEADER_SCHEMA] = self.schema
            if self.time_zone:
                headers[HEADER_TIME_ZONE] = self.time_zone
            if self.client_tags:
                headers[HEADER_CLIENT_TAGS] = ",".join(self.client_tags)
            if self.properties:
                # ``name`` must not contain ``=``
                headers[HEADER_SESSION] = ",".join(
                    f"{name}={urllib.parse.quote(str(value))}"
                    for name, value in self.properties.items()
                )
            if self.prepared_statements:
                headers[HEADER_PREPARED_STATEMENT] = ",".join(
                    f"{name}={urllib.parse.quote_plus(statement)}"
                    for name, statement in self.prepared_statements.items()
                )
            for key, value in self.extra_headers.items():
                if key.lower() in (name.lower() for name in headers):
                    msg = f"cannot override reserved HTTP header {key}"
                    raise ValueError(msg)
                headers[key] = value
            return headers

    def apply_response_headers(self, headers: Mapping[str, str]) -> list[str]:
        """Fold session-changing response headers into this state.

        Headers are applied in the order the response lists them. Returns
        the names of the headers that changed the session.
        """
        applied: list[str] = []
        with self._lock:
            # requests' CaseInsensitiveDict iterates in wire order.
            for name, raw in list(headers.items()):
                if self._apply_one(name.lower(), raw):
                    applied.append(name)
        if applied:
            log = structlog.get_logger()
            log.debug(
                "session updated",
                event_id=LogEvent.SESSION_UPDATED,
                headers=applied,
            )
        return applied

    def _apply_one(self, name: str, raw: str) -> bool:
        if name == HEADER_SET_CATALOG.lower():
            self.catalog = raw.strip()
        elif name == HEADER_SET_SCHEMA.lower():
            self.schema = raw.strip()
        elif name == HEADER_SET_SESSION.lower():
            for key, value in _split_pairs(raw):
                self.properties.pop(key, None)
                self.properties[key] = value
        elif name == HEADER_CLEAR_SESSION.lower():
            for key in _split_values(raw):
                self.properties.pop(key, None)
        elif name == HEADER_STARTED_TRANSACTION.lower():
            self.transaction_id = raw.strip()
        elif name == HEADER_CLEAR_TRANSACTION.lower():
            self.transaction_id = None
        elif name == HEADER_ADDED_PREPARE.lower():
            for key, statement in _split_pairs(raw):
                self.prepared_statements[key] = statement
        elif name == HEADER_DEALLOCATED_PREPARE.lower():
            for key in _split_values(raw):
                self.prepared_statements.pop(urllib.parse.unquote_plus(key), None)
        else:
            return False
        return True

    def set_property(self, name: str, value: str) -> None:
        if "=" in name:
            msg = f"Session property name must not contain '=': {name!r}"
            raise ValueError(msg)
        with self._lock:
            self.properties[name] = value

    def has_prepared_statement(self, name: str) -> bool:
        with self._lock:
            return name in self.prepared_statements

    def forget_prepared_statement(self, name: str) -> None:
        with self._lock:
            self.prepared_statements.pop(name, None)

    def reset(self) -> None:
        """Drop server-derived state, as after a reconnect."""
        with self._lock:
            self.transaction_id = None
            self.prepared_statements.clear()
