"""Tests for query text and parameter resolution."""

import io
from unittest.mock import patch

import pytest

from trino_stream.core.exceptions import InputError
from trino_stream.core.query_source import parse_param, parse_params, resolve_query_source


@pytest.fixture
def sql_file(temp_dir):
    path = temp_dir / "select_42.sql"
    path.write_text("SELECT 42 AS answer;\n")
    return str(path)


@pytest.mark.unit
def test_inline_query():
    assert resolve_query_source(inline="SELECT 1", file_path=None) == "SELECT 1"


@pytest.mark.unit
def test_inline_takes_precedence_over_file(sql_file):
    assert resolve_query_source(inline="SELECT 1", file_path=sql_file) == "SELECT 1"


@pytest.mark.unit
def test_file_query_strips_terminator(sql_file):
    assert resolve_query_source(inline=None, file_path=sql_file) == "SELECT 42 AS answer"


@pytest.mark.unit
def test_file_not_found_raises_input_error():
    with pytest.raises(InputError, match="Query file not found"):
        resolve_query_source(inline=None, file_path="/nonexistent/file.sql")


@pytest.mark.unit
def test_stdin_query():
    with (
        patch("sys.stdin", new=io.StringIO("SELECT 99")),
        patch("sys.stdin.isatty", return_value=False),
    ):
        result = resolve_query_source(inline=None, file_path=None)
    assert result == "SELECT 99"


@pytest.mark.unit
def test_no_query_source_raises_input_error():
    with patch("sys.stdin.isatty", return_value=True):
        with pytest.raises(InputError, match="No query provided"):
            resolve_query_source(inline=None, file_path=None)


@pytest.mark.unit
def test_blank_query_raises_input_error():
    with pytest.raises(InputError, match="empty"):
        resolve_query_source(inline="  ;  ", file_path=None)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("42", 42),
        ("1.5", 1.5),
        ("true", True),
        ("null", None),
        ('"42"', "42"),
        ("FRANCE", "FRANCE"),
        ("[1, 2]", [1, 2]),
    ],
)
def test_parse_param(raw, expected):
    assert parse_param(raw) == expected


@pytest.mark.unit
def test_parse_params_empty():
    assert parse_params(None) is None
    assert parse_params([]) is None
    assert parse_params(["1", "x"]) == [1, "x"]
