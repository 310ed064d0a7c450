"""Tests for prepared statements and buffered rows."""

import pytest

from conftest import results, sent_queries
from nsqlite.database.statement import Rows
from nsqlite.errors import QueryError, UnexpectedResponseError


class TestStatement:
    """Tests for Statement.execute and Statement.query."""

    def test_execute_returns_exec_result(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "write", "lastInsertId": 7, "rowsAffected": 1})

        result = conn.prepare("INSERT INTO users (name) VALUES (?)").execute(["ann"])

        assert result.last_insert_id == 7
        assert result.rows_affected == 1
        assert sent_queries(mock_session) == [
            {"query": "INSERT INTO users (name) VALUES (?)", "params": [{"value": "ann"}]}
        ]

    def test_named_parameters(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "write"})

        conn.execute("UPDATE users SET name = :name", {"name": "bob"})

        assert sent_queries(mock_session)[0]["params"] == [{"name": "name", "value": "bob"}]

    def test_execute_rejects_read(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "read"})

        with pytest.raises(UnexpectedResponseError):
            conn.execute("SELECT 1")

    def test_query_rejects_write(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "write"})

        with pytest.raises(UnexpectedResponseError):
            conn.query("DELETE FROM t")

    def test_error_result_carries_message(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "error", "error": "no such table: t"})

        with pytest.raises(QueryError, match="no such table: t") as exc_info:
            conn.query("SELECT * FROM t")
        assert exc_info.value.query == "SELECT * FROM t"

    def test_num_input_is_unknown(self, conn):
        assert conn.prepare("SELECT ?").num_input() == -1

    def test_query_rows(self, conn, mock_session):
        mock_session.request.return_value = results(
            {
                "type": "read",
                "columns": ["id", "name"],
                "types": ["integer", "text"],
                "values": [[1, "ann"], [2, "bob"]],
            }
        )

        rows = conn.query("SELECT id, name FROM users")

        assert rows.columns == ["id", "name"]
        assert list(rows) == [(1, "ann"), (2, "bob")]


class TestRows:
    """Tests for Rows iteration and type names."""

    def test_two_rows_then_end_of_data(self):
        rows = Rows(["id", "name"], ["integer", "text"], [[1, "a"], [2, "b"]])

        assert next(rows) == (1, "a")
        assert next(rows) == (2, "b")
        with pytest.raises(StopIteration):
            next(rows)

    def test_empty(self):
        assert list(Rows(["id"], [], [])) == []

    def test_column_type_names(self):
        rows = Rows(["id", "name"], ["integer", "text"], [])

        assert rows.column_type_database_type_name(0) == "INTEGER"
        assert rows.column_type_database_type_name(1) == "TEXT"
        assert rows.column_type_database_type_name(2) == ""
        assert rows.column_type_database_type_name(-1) == ""

    def test_values_are_not_coerced(self):
        rows = Rows(["n"], ["text"], [[5]])
        assert next(rows) == (5,)

    def test_close_stops_iteration(self):
        rows = Rows(["id"], [], [[1], [2]])
        rows.close()
        assert list(rows) == []
