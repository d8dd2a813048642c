"""Exception hierarchy for trino-stream.

All exceptions carry an exit_code for CLI return value mapping.
Exit codes are defined in exit_codes.py.
"""

from __future__ import annotations

from typing import Any

from trino_stream.core.exit_codes import ExitCode


class TrinoStreamError(Exception):
    """Base exception for all trino-stream errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ProtocolError(TrinoStreamError):
    """Malformed response, inconsistent columns, retry budget exhausted."""

    exit_code: int = ExitCode.PROTOCOL_ERROR

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class QueryFailedError(TrinoStreamError):
    """The server reported a SQL or execution error.

    The server payload is kept verbatim in ``error``; the message is the
    server's message, unmodified.
    """

    exit_code: int = ExitCode.QUERY_FAILED

    def __init__(
        self,
        error: dict[str, Any],
        query_id: str | None = None,
        stats: Any = None,
    ) -> None:
        self.error = error
        self.query_id = query_id
        self.stats = stats
        super().__init__(str(error.get("message", "")))

    @property
    def error_code(self) -> int | None:
        return self.error.get("errorCode")

    @property
    def error_name(self) -> str | None:
        return self.error.get("errorName")

    @property
    def error_type(self) -> str | None:
        return self.error.get("errorType")

    @property
    def sql_state(self) -> str | None:
        return self.error.get("sqlState")

    @property
    def failure_info(self) -> dict[str, Any] | None:
        return self.error.get("failureInfo")

    @property
    def error_location(self) -> tuple[int, int] | None:
        location = self.error.get("errorLocation")
        if not location:
            return None
        return location["lineNumber"], location["columnNumber"]

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(type={self.error_type}, name={self.error_name}, "
            f'message="{self.message}", query_id={self.query_id})'
        )


class DecodingError(TrinoStreamError):
    """A value could not be converted to its declared type."""

    exit_code: int = ExitCode.DECODING_ERROR

    def __init__(
        self,
        message: str,
        column_index: int | None = None,
        column_name: str | None = None,
        type_signature: str | None = None,
    ) -> None:
        self.column_index = column_index
        self.column_name = column_name
        self.type_signature = type_signature
        super().__init__(message)

    def with_column(
        self, column_index: int, column_name: str, type_signature: str
    ) -> DecodingError:
        msg = (
            f"Column {column_index} '{column_name}' ({type_signature}): {self.message}"
        )
        return DecodingError(
            msg,
            column_index=column_index,
            column_name=column_name,
            type_signature=type_signature,
        )


class TimeoutError(TrinoStreamError):
    """Overall query deadline exceeded."""

    exit_code: int = ExitCode.TIMEOUT


class CancellationError(TrinoStreamError):
    """Operation aborted by caller-initiated cancellation."""

    exit_code: int = ExitCode.CANCELED


class InputError(TrinoStreamError):
    """File not found, invalid parameters, unknown prepared statement."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(TrinoStreamError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR
