"""Shared test fixtures for trino-stream."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from tests.http_fakes import BASE_URL, FakeHttpSession
from trino_stream.cli.main import app
from trino_stream.core.retry import RetryPolicy
from trino_stream.core.session import SessionState
from trino_stream.core.statement import StatementClient

_TRINO_ENV = (
    "TRINO_HOST",
    "TRINO_PORT",
    "TRINO_USER",
    "TRINO_PASSWORD",
    "TRINO_CATALOG",
    "TRINO_SCHEMA",
    "TRINO_PROFILE",
    "TRINO_STREAM_SENTRY_DSN",
    "TRINO_STREAM_SENTRY_ENVIRONMENT",
    "TRINO_STREAM_SENTRY_TRACES_SAMPLE_RATE",
)


@pytest.fixture(autouse=True)
def clean_trino_env(monkeypatch):
    """Keep the developer's TRINO_* variables out of unit tests."""
    for name in _TRINO_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fast_retry():
    """Retry policy without waits."""
    return RetryPolicy(max_attempts=3, base_delay=0.0, jitter=False)


@pytest.fixture
def http():
    return FakeHttpSession()


@pytest.fixture
def session():
    return SessionState(user="alice", catalog="tpch", schema="tiny")


@pytest.fixture
def statement_client(http, session, fast_retry):
    return StatementClient(BASE_URL, session, http, retry_policy=fast_retry)
