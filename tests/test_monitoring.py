"""Tests for Sentry setup."""

from unittest.mock import patch

import pytest

from trino_stream import __version__
from trino_stream.core.monitoring import setup_sentry


@pytest.mark.unit
def test_disabled_without_dsn():
    with patch("trino_stream.core.monitoring.sentry_sdk.init") as init:
        assert setup_sentry() is False
    init.assert_not_called()


@pytest.mark.unit
def test_enabled_with_dsn(monkeypatch):
    monkeypatch.setenv("TRINO_STREAM_SENTRY_DSN", "https://key@sentry.example/1")
    with patch("trino_stream.core.monitoring.sentry_sdk") as sdk:
        assert setup_sentry() is True
    kwargs = sdk.init.call_args.kwargs
    assert kwargs["dsn"] == "https://key@sentry.example/1"
    assert kwargs["environment"] == "local"
    assert kwargs["traces_sample_rate"] == 0.03
    assert kwargs["release"] == f"trino-stream@{__version__}"
    assert kwargs["send_default_pii"] is False


@pytest.mark.unit
def test_environment_and_rate_from_env(monkeypatch):
    monkeypatch.setenv("TRINO_STREAM_SENTRY_DSN", "https://key@sentry.example/1")
    monkeypatch.setenv("TRINO_STREAM_SENTRY_ENVIRONMENT", "prod")
    monkeypatch.setenv("TRINO_STREAM_SENTRY_TRACES_SAMPLE_RATE", "5")
    with patch("trino_stream.core.monitoring.sentry_sdk") as sdk:
        setup_sentry()
    kwargs = sdk.init.call_args.kwargs
    assert kwargs["environment"] == "prod"
    assert kwargs["traces_sample_rate"] == 1.0


@pytest.mark.unit
def test_bad_rate_falls_back(monkeypatch):
    monkeypatch.setenv("TRINO_STREAM_SENTRY_DSN", "https://key@sentry.example/1")
    monkeypatch.setenv("TRINO_STREAM_SENTRY_TRACES_SAMPLE_RATE", "often")
    with patch("trino_stream.core.monitoring.sentry_sdk") as sdk:
        setup_sentry(environment="ci")
    assert sdk.init.call_args.kwargs["traces_sample_rate"] == 0.03
    assert sdk.init.call_args.kwargs["environment"] == "ci"
