"""Sentry integration for error tracking and performance monitoring.

Sentry is initialized by the CLI after logging setup, and only when
TRINO_STREAM_SENTRY_DSN is set. Library users that never call
setup_sentry() get no-op spans from sentry_sdk.
"""

import os

import sentry_sdk

from trino_stream.__about__ import __version__

_SENTRY_DSN_ENV = "TRINO_STREAM_SENTRY_DSN"
_SENTRY_ENVIRONMENT_ENV = "TRINO_STREAM_SENTRY_ENVIRONMENT"
_SENTRY_TRACES_RATE_ENV = "TRINO_STREAM_SENTRY_TRACES_SAMPLE_RATE"
_DEFAULT_TRACES_SAMPLE_RATE = 0.03


def _traces_sample_rate() -> float:
    raw = os.environ.get(_SENTRY_TRACES_RATE_ENV)
    if raw is None:
        return _DEFAULT_TRACES_SAMPLE_RATE
    try:
        rate = float(raw)
    except ValueError:
        return _DEFAULT_TRACES_SAMPLE_RATE
    return min(1.0, max(0.0, rate))


def setup_sentry(environment: str | None = None) -> bool:
    """Initialize Sentry from the environment. Returns whether it was enabled."""
    dsn = os.environ.get(_SENTRY_DSN_ENV)
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=_traces_sample_rate(),
        environment=environment or os.environ.get(_SENTRY_ENVIRONMENT_ENV, "local"),
        release=f"trino-stream@{__version__}",
        attach_stacktrace=True,
        send_default_pii=False,
    )
    sentry_sdk.set_tag("component", "trino-stream")
    return True
