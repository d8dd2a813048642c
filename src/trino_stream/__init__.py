"""trino-stream: a Trino statement-protocol client."""

from trino_stream.__about__ import __version__
from trino_stream.core.client import TrinoClient
from trino_stream.core.cursor import Cursor
from trino_stream.core.exceptions import (
    CancellationError,
    DecodingError,
    ProtocolError,
    QueryFailedError,
    TimeoutError,
    TrinoStreamError,
)

__all__ = [
    "CancellationError",
    "Cursor",
    "DecodingError",
    "ProtocolError",
    "QueryFailedError",
    "TimeoutError",
    "TrinoClient",
    "TrinoStreamError",
    "__version__",
]
