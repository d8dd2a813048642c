"""Tests for package structure and public imports."""

import pytest


@pytest.mark.unit
def test_package_imports():
    """Package imports without errors."""
    import trino_stream

    assert trino_stream is not None


@pytest.mark.unit
def test_public_api():
    from trino_stream import (
        CancellationError,
        Cursor,
        ProtocolError,
        QueryFailedError,
        TrinoClient,
        TrinoStreamError,
    )

    assert issubclass(ProtocolError, TrinoStreamError)
    assert issubclass(QueryFailedError, TrinoStreamError)
    assert issubclass(CancellationError, TrinoStreamError)
    assert TrinoClient.execute is not None
    assert Cursor.fetchone is not None


@pytest.mark.unit
def test_version_format():
    """Version follows semver format."""
    from trino_stream import __version__

    parts = __version__.split(".")
    assert len(parts) == 3
    for part in parts:
        assert part.isdigit()


@pytest.mark.unit
def test_version_value():
    from trino_stream import __version__

    assert __version__ == "0.1.0"
