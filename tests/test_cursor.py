"""Tests for the lazy result cursor."""

from decimal import Decimal

import pytest
import requests

from tests.http_fakes import (
    column,
    error_payload,
    page_uri,
    paged_responses,
    statement_response,
)
from trino_stream.core.cursor import Cursor
from trino_stream.core.exceptions import (
    CancellationError,
    DecodingError,
    ProtocolError,
    QueryFailedError,
)
from trino_stream.core.models import QueryState

NATION_COLUMNS = [column("nationkey", "bigint"), column("name", "varchar(25)")]
NATION_ROWS = [[i, f"NATION_{i:02d}"] for i in range(25)]


def open_cursor(statement_client, sql="SELECT nationkey, name FROM nation"):
    return Cursor(statement_client, statement_client.submit(sql))


@pytest.fixture
def nation_http(http):
    http.queue(*paged_responses(NATION_COLUMNS, [NATION_ROWS[:10], NATION_ROWS[10:20], NATION_ROWS[20:]]))
    return http


# -- Iteration --


@pytest.mark.unit
class TestIteration:
    def test_rows_in_key_order(self, statement_client, nation_http):
        with open_cursor(statement_client) as cursor:
            rows = list(cursor)
        assert len(rows) == 25
        assert [r[0] for r in rows] == list(range(25))
        assert rows[3] == (3, "NATION_03")

    def test_pages_fetched_on_demand(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        assert len(nation_http.calls) == 1
        cursor.fetchone()
        assert len(nation_http.calls) == 2
        cursor.fetchmany(9)
        assert len(nation_http.calls) == 2
        cursor.fetchone()
        assert len(nation_http.calls) == 3

    def test_fetch_methods(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        assert cursor.fetchone() == (0, "NATION_00")
        assert len(cursor.fetchmany(4)) == 4
        assert cursor.rownumber == 5
        rest = cursor.fetchall()
        assert len(rest) == 20
        assert cursor.fetchone() is None
        assert cursor.fetchmany(3) == []
        assert cursor.has_next() is False

    def test_single_scalar_row(self, statement_client, http):
        http.queue(
            statement_response(next_uri=page_uri(1), state="QUEUED"),
            statement_response(columns=[column("value", "integer")], data=[[42]], state="FINISHED"),
        )
        cursor = open_cursor(statement_client, "SELECT 42 AS value")
        assert cursor.fetchall() == [(42,)]
        assert [c.name for c in cursor.columns] == ["value"]

    def test_values_are_decoded(self, statement_client, http):
        http.queue(
            statement_response(
                columns=[column("price", "decimal(12,2)"), column("tags", "array(varchar)")],
                data=[["1234.50", ["a", None]]],
                state="FINISHED",
            )
        )
        cursor = open_cursor(statement_client, "SELECT price, tags FROM t")
        assert cursor.fetchone() == (Decimal("1234.50"), ["a", None])

    def test_decoding_failure_names_column(self, statement_client, http):
        http.queue(
            statement_response(
                columns=[column("id", "bigint"), column("n", "tinyint")],
                data=[[1, 300]],
                state="FINISHED",
            )
        )
        cursor = open_cursor(statement_client)
        with pytest.raises(DecodingError) as exc_info:
            cursor.fetchone()
        assert exc_info.value.column_index == 1
        assert exc_info.value.column_name == "n"
        assert exc_info.value.type_signature == "tinyint"


# -- Metadata --


@pytest.mark.unit
class TestMetadata:
    def test_columns_wait_for_first_page(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        columns = cursor.columns
        assert [c.name for c in columns] == ["nationkey", "name"]
        assert columns[1].column_type.length == 25
        # the buffered page is still delivered
        assert cursor.fetchone() == (0, "NATION_00")

    def test_description(self, statement_client, http):
        http.queue(
            statement_response(
                columns=[column("price", "decimal(10,3)"), column("name", "varchar")],
                data=[],
                state="FINISHED",
            )
        )
        cursor = open_cursor(statement_client)
        assert cursor.description == [
            ("price", "decimal(10,3)", None, None, 10, 3, None),
            ("name", "varchar", None, None, None, None, None),
        ]

    def test_description_none_without_columns(self, statement_client, http):
        http.queue(statement_response(state="FINISHED", updateType="CREATE TABLE"))
        cursor = open_cursor(statement_client, "CREATE TABLE t (x int)")
        assert cursor.description is None
        assert cursor.update_type == "CREATE TABLE"

    def test_query_properties(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        cursor.fetchall()
        assert cursor.query_id is not None
        assert cursor.state is QueryState.FINISHED
        assert cursor.stats.processed_rows == 25

    def test_column_change_is_protocol_error(self, statement_client, http):
        http.queue(
            statement_response(next_uri=page_uri(1), columns=NATION_COLUMNS, data=[[1, "a"]]),
            statement_response(columns=[column("other", "bigint")], data=[[2]], state="FINISHED"),
        )
        cursor = open_cursor(statement_client)
        cursor.fetchone()
        with pytest.raises(ProtocolError, match="Columns changed"):
            cursor.fetchone()


# -- Errors and closing --


@pytest.mark.unit
class TestLifecycle:
    def test_failure_surfaces_after_delivered_rows(self, statement_client, http):
        http.queue(
            statement_response(next_uri=page_uri(1), columns=NATION_COLUMNS, data=[[1, "a"]]),
            statement_response(error=error_payload("Query exceeded memory limit"), state="FAILED"),
        )
        cursor = open_cursor(statement_client)
        assert cursor.fetchone() == (1, "a")
        with pytest.raises(QueryFailedError, match="memory limit"):
            cursor.fetchone()

    def test_close_mid_iteration_cancels(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        for _ in range(3):
            next(cursor)
        cursor.close()
        assert nation_http.calls[-1].method == "DELETE"
        assert cursor.state is QueryState.CANCELED

    def test_close_mid_iteration_survives_failed_delete(self, statement_client, nation_http):
        nation_http.delete_outcome = requests.ConnectionError("refused")
        cursor = open_cursor(statement_client)
        next(cursor)
        cursor.close()
        assert cursor.state is QueryState.CANCELED
        assert cursor.closed

    def test_close_after_exhaustion_does_not_cancel(self, statement_client, nation_http):
        with open_cursor(statement_client) as cursor:
            cursor.fetchall()
        assert "DELETE" not in nation_http.methods()

    def test_close_runs_callbacks_once(self, statement_client, nation_http):
        calls = []
        cursor = Cursor(
            statement_client,
            statement_client.submit("SELECT 1"),
            on_close=[lambda: calls.append("first")],
        )
        cursor.add_close_callback(lambda: calls.append("second"))
        cursor.close()
        cursor.close()
        assert calls == ["first", "second"]

    def test_fetch_after_close_raises(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        cursor.close()
        with pytest.raises(CancellationError):
            cursor.fetchone()

    def test_cancel_discards_buffered_rows(self, statement_client, nation_http):
        cursor = open_cursor(statement_client)
        cursor.fetchone()
        cursor.cancel()
        with pytest.raises(CancellationError):
            cursor.fetchone()
        assert cursor.state is QueryState.CANCELED
