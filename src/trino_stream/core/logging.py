"""Logging configuration using structlog.

Logs go to stderr so stdout carries only query output. Core modules tag
every log call with an ``event_id`` from LogEvent; the renderers emit the
numeric id together with its ``event_name``.
"""

import logging
import sys
from enum import IntEnum
from typing import Any

import structlog


class LogEvent(IntEnum):
    """Structured event ids attached to core log records."""

    QUERY_SUBMITTED = 1000
    PAGE_RECEIVED = 1001
    QUERY_FINISHED = 1002
    QUERY_FAILED = 1003
    QUERY_CANCELED = 1004
    CANCEL_FAILED = 1005
    DEADLINE_EXCEEDED = 1006
    RETRY_SCHEDULED = 1100
    RETRY_EXHAUSTED = 1101
    SESSION_UPDATED = 1200
    STATEMENT_PREPARED = 1300
    STATEMENT_REPREPARED = 1301
    STATEMENT_DEALLOCATED = 1302
    DEALLOCATE_FAILED = 1303
    CURSOR_CLOSED = 1400


def add_event_name(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Split a LogEvent into a plain integer id and its name."""
    event_id = event_dict.get("event_id")
    if isinstance(event_id, LogEvent):
        event_dict["event_id"] = int(event_id)
        event_dict["event_name"] = event_id.name
    return event_dict


class _StderrLoggerFactory:
    # CliRunner swaps sys.stderr per invocation, so look it up per logger.
    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def setup_logging(verbose: bool = False, json_logs: bool = False) -> None:
    """Configure structlog for trino-stream.

    Args:
        verbose: Log at DEBUG instead of INFO.
        json_logs: Render one JSON object per line instead of console output.
    """
    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_event_name,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        context_class=dict,
        logger_factory=_StderrLoggerFactory(),
        cache_logger_on_first_use=False,
    )
