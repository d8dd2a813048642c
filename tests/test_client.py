"""Tests for TrinoClient.

Unit tests run against a scripted HTTP session; the integration tests at
the bottom need a live server (see tests/integration_config.py).
"""

import pytest

from tests.http_fakes import (
    FakeHttpSession,
    column,
    deallocate_ok,
    error_payload,
    page_uri,
    paged_responses,
    prepare_ok,
    statement_response,
)
from tests.integration_config import TEST_DSN, requires_trino
from trino_stream.core.client import TrinoClient
from trino_stream.core.config import AppConfig, ResolvedConfig, resolve_config
from trino_stream.core.exceptions import ConfigError, InputError, QueryFailedError
from trino_stream.core.models import QueryResult
from trino_stream.core.retry import RetryPolicy


@pytest.fixture
def resolved_config():
    return ResolvedConfig(
        host="trino.test",
        port=8080,
        user="alice",
        catalog="tpch",
        schema_name="tiny",
        default_timeout=60.0,
    )


@pytest.fixture
def fake_http():
    return FakeHttpSession()


@pytest.fixture
def client(resolved_config, fake_http):
    with TrinoClient(
        resolved_config,
        http_session=fake_http,
        retry_policy=RetryPolicy(max_attempts=2, base_delay=0.0),
    ) as c:
        yield c


# -- Construction --


@pytest.mark.unit
class TestConstruction:
    def test_session_from_config(self, client):
        assert client.session.user == "alice"
        assert client.session.catalog == "tpch"
        assert client.session.schema == "tiny"
        assert client.statements.statement_url == "http://trino.test:8080/v1/statement"

    def test_password_requires_https(self, resolved_config):
        config = resolved_config.model_copy(update={"password": "secret"})  # pragma: allowlist secret
        with pytest.raises(ConfigError, match="https"):
            TrinoClient(config)

    def test_password_over_https_uses_basic_auth(self, resolved_config):
        config = resolved_config.model_copy(
            update={"password": "secret", "http_scheme": "https"}  # pragma: allowlist secret
        )
        with TrinoClient(config) as c:
            assert c._http.auth.username == "alice"
            assert c.statements.base_url == "https://trino.test:8080"

    def test_close_keeps_borrowed_session_open(self, resolved_config, fake_http):
        TrinoClient(resolved_config, http_session=fake_http).close()
        assert fake_http.closed is False


# -- Queries --


@pytest.mark.unit
class TestExecute:
    def test_select_42(self, client, fake_http):
        fake_http.queue(
            statement_response(next_uri=page_uri(1), state="QUEUED"),
            statement_response(columns=[column("value", "integer")], data=[[42]], state="FINISHED"),
        )
        result = client.execute_query("SELECT 42 AS value")

        assert isinstance(result, QueryResult)
        assert result.rows == [(42,)]
        assert result.row_count == 1
        assert result.columns[0].name == "value"
        assert result.columns[0].type_name == "integer"
        assert result.status_message == "SELECT"
        assert result.query_id is not None

    def test_nation_over_three_pages(self, client, fake_http):
        rows = [[i, f"NATION_{i}", i % 5] for i in range(25)]
        columns = [
            column("nationkey", "bigint"),
            column("name", "varchar(25)"),
            column("regionkey", "bigint"),
        ]
        fake_http.queue(*paged_responses(columns, [rows[:8], rows[8:16], rows[16:]]))

        result = client.execute_query("SELECT * FROM nation ORDER BY nationkey")

        assert result.row_count == 25
        assert [r[0] for r in result.rows] == list(range(25))

    def test_missing_table(self, client, fake_http):
        message = "line 1:15: Table 'tpch.tiny.no_such_table' does not exist"
        fake_http.queue(
            statement_response(next_uri=page_uri(1), state="QUEUED"),
            statement_response(
                error=error_payload(message, "TABLE_NOT_FOUND", 46, errorLocation={"lineNumber": 1, "columnNumber": 15}),
                state="FAILED",
            ),
        )
        with pytest.raises(QueryFailedError) as exc_info:
            client.execute_query("SELECT * FROM no_such_table")

        assert "no_such_table" in exc_info.value.message
        assert exc_info.value.error_name == "TABLE_NOT_FOUND"
        assert exc_info.value.error_location == (1, 15)

    def test_execute_scalar(self, client, fake_http):
        fake_http.queue(statement_response(columns=[column("c", "bigint")], data=[[25]], state="FINISHED"))
        assert client.execute_scalar("SELECT count(*) FROM nation") == 25

    def test_execute_scalar_empty(self, client, fake_http):
        fake_http.queue(statement_response(columns=[column("c", "bigint")], data=[], state="FINISHED"))
        assert client.execute_scalar("SELECT 1 WHERE false") is None

    def test_execute_statement_returns_update_count(self, client, fake_http):
        fake_http.queue(
            statement_response(next_uri=page_uri(1)),
            statement_response(
                columns=[column("rows", "bigint")], data=[[3]], state="FINISHED",
                updateType="INSERT", updateCount=3,
            ),
        )
        assert client.execute_statement("INSERT INTO t VALUES 1, 2, 3") == 3


# -- Parameters --


@pytest.mark.unit
class TestParameters:
    def test_prepare_execute_deallocate(self, client, fake_http):
        fake_http.queue(
            prepare_ok,
            statement_response(columns=[column("name", "varchar(25)")], data=[["FRANCE"]], state="FINISHED"),
            deallocate_ok,
        )
        with client.execute("SELECT name FROM nation WHERE nationkey = ?", [6]) as cursor:
            assert cursor.fetchall() == [("FRANCE",)]

        statements = fake_http.sql()
        assert statements[0].startswith("PREPARE st_")
        assert statements[0].endswith(" FROM SELECT name FROM nation WHERE nationkey = ?")
        assert statements[1].endswith(" USING 6")
        assert statements[2].startswith("DEALLOCATE PREPARE st_")
        assert client.session.prepared_statements == {}
        assert client.prepared.names == []

    def test_null_parameter(self, client, fake_http):
        fake_http.queue(
            prepare_ok,
            statement_response(columns=[column("v", "integer")], data=[[None]], state="FINISHED"),
            deallocate_ok,
        )
        assert client.execute_scalar("SELECT ?", [None]) is None
        assert fake_http.sql()[1].endswith(" USING NULL")

    def test_failed_execute_still_deallocates(self, client, fake_http):
        fake_http.queue(
            prepare_ok,
            statement_response(error=error_payload("Incorrect number of parameters"), state="FAILED"),
            deallocate_ok,
        )
        with pytest.raises(QueryFailedError, match="Incorrect number"):
            client.execute("SELECT ?, ?", [1])
        assert fake_http.sql()[-1].startswith("DEALLOCATE PREPARE")

    def test_string_params_rejected(self, client, fake_http):
        with pytest.raises(InputError, match="sequence"):
            client.execute("SELECT ?", "abc")
        assert fake_http.calls == []


# -- Transactions and session --


@pytest.mark.unit
class TestTransactions:
    def test_begin_and_commit(self, client, fake_http):
        fake_http.queue(
            statement_response(
                state="FINISHED", updateType="START TRANSACTION",
                headers=[("X-Trino-Started-Transaction-Id", "tx-1")],
            ),
            statement_response(
                state="FINISHED", updateType="COMMIT",
                headers=[("X-Trino-Clear-Transaction-Id", "true")],
            ),
        )
        client.begin()
        assert client.in_transaction
        client.commit()
        assert not client.in_transaction
        assert fake_http.calls[1].headers["X-Trino-Transaction-Id"] == "tx-1"

    def test_reset_session_drops_transaction(self, client):
        client.session.transaction_id = "tx-9"
        client.reset_session()
        assert not client.in_transaction


# -- Integration --


@pytest.fixture
def live_client():
    config = resolve_config(AppConfig(), dsn=TEST_DSN)
    with TrinoClient(config) as c:
        yield c


@requires_trino
@pytest.mark.integration
def test_live_select_42(live_client):
    result = live_client.execute_query("SELECT 42 AS value")
    assert result.rows == [(42,)]
    assert result.columns[0].name == "value"


@requires_trino
@pytest.mark.integration
def test_live_nation_rows_in_order(live_client):
    result = live_client.execute_query("SELECT nationkey, name FROM nation ORDER BY nationkey")
    assert result.row_count == 25
    assert [r[0] for r in result.rows] == list(range(25))


@requires_trino
@pytest.mark.integration
def test_live_positional_params(live_client):
    rows = live_client.execute(
        "SELECT name FROM nation WHERE regionkey = ? AND nationkey < ? ORDER BY name", [1, 10]
    ).fetchall()
    assert rows == [("ARGENTINA",), ("BRAZIL",), ("CANADA",)]


@requires_trino
@pytest.mark.integration
def test_live_null_and_mixed_types(live_client):
    row = live_client.execute(
        "SELECT CAST(NULL AS varchar), DECIMAL '12.50', DATE '2024-02-29', ARRAY[1, 2]"
    ).fetchone()
    assert row[0] is None
    assert str(row[1]) == "12.50"
    assert row[2].isoformat() == "2024-02-29"
    assert row[3] == [1, 2]


@requires_trino
@pytest.mark.integration
def test_live_missing_table(live_client):
    with pytest.raises(QueryFailedError, match="no_such_table"):
        live_client.execute_query("SELECT * FROM no_such_table")
