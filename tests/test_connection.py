"""Tests for the connection/transaction state machine."""

import pytest
import requests

from conftest import make_response, results, sent_queries
from nsqlite.database.connection import Connection, ConnectionState
from nsqlite.errors import (
    BadConnectionError,
    InterfaceError,
    ProgrammingError,
    QueryError,
    TransportError,
    UnexpectedResponseError,
)


def begin(conn, mock_session, tx_id="tx-1"):
    mock_session.request.return_value = results({"type": "begin", "txId": tx_id})
    return conn.begin()


class TestBegin:
    """Tests for Connection.begin."""

    def test_starts_in_idle(self, conn):
        assert conn.state is ConnectionState.IDLE
        assert conn.tx_id == ""

    def test_begin_stores_tx_id(self, conn, mock_session):
        tx = begin(conn, mock_session)

        assert conn.state is ConnectionState.IN_TRANSACTION
        assert conn.tx_id == "tx-1"
        assert tx.connection is conn
        assert sent_queries(mock_session) == [{"query": "BEGIN;"}]

    def test_begin_error_response(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "error", "error": "busy"})

        with pytest.raises(QueryError, match="busy"):
            conn.begin()
        assert conn.state is ConnectionState.IDLE

    def test_begin_unexpected_kind(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "write"})

        with pytest.raises(UnexpectedResponseError):
            conn.begin()
        assert conn.tx_id == ""

    def test_begin_twice_does_not_overwrite(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.reset_mock()

        with pytest.raises(ProgrammingError):
            conn.begin()
        assert conn.tx_id == "tx-1"
        mock_session.request.assert_not_called()


class TestCommitRollback:
    """Tests for Connection.commit and Connection.rollback."""

    def test_commit_when_idle_is_noop(self, conn, mock_session):
        conn.commit()
        conn.rollback()
        mock_session.request.assert_not_called()

    def test_commit_sends_tx_id_and_clears_it(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "commit"})

        conn.commit()

        assert sent_queries(mock_session) == [{"query": "COMMIT", "txId": "tx-1"}]
        assert conn.state is ConnectionState.IDLE

    def test_second_commit_is_noop(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "commit"})
        conn.commit()
        calls = mock_session.request.call_count

        conn.commit()

        assert mock_session.request.call_count == calls
        assert conn.tx_id == ""

    def test_rollback_network_failure_still_clears(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.side_effect = requests.exceptions.ConnectionError("gone")

        with pytest.raises(TransportError):
            conn.rollback()
        assert conn.state is ConnectionState.IDLE

    def test_commit_error_response_still_clears(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "error", "error": "conflict"})

        with pytest.raises(QueryError, match="conflict"):
            conn.commit()
        assert conn.tx_id == ""

    def test_rollback_unexpected_kind(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "commit"})

        with pytest.raises(UnexpectedResponseError):
            conn.rollback()
        assert conn.tx_id == ""

    def test_transaction_handle_delegates(self, conn, mock_session):
        tx = begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "rollback"})

        tx.rollback()

        assert sent_queries(mock_session) == [{"query": "ROLLBACK", "txId": "tx-1"}]
        assert conn.tx_id == ""

    def test_transaction_context_manager_rolls_back_on_error(self, conn, mock_session):
        tx = begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "rollback"})

        with pytest.raises(RuntimeError):
            with tx:
                raise RuntimeError("boom")

        assert sent_queries(mock_session)[0]["query"] == "ROLLBACK"

    def test_finished_handle_cannot_end_newer_transaction(self, conn, mock_session):
        first = begin(conn, mock_session, tx_id="tx-1")
        mock_session.request.return_value = results({"type": "commit"})
        first.commit()
        begin(conn, mock_session, tx_id="tx-2")
        mock_session.request.reset_mock()

        with pytest.raises(ProgrammingError):
            first.rollback()

        assert conn.tx_id == "tx-2"
        mock_session.request.assert_not_called()

    def test_finished_handle_is_noop_while_idle(self, conn, mock_session):
        tx = begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "commit"})

        with tx:
            tx.commit()

        assert mock_session.request.call_count == 2
        assert conn.tx_id == ""


class TestStatementsInTransaction:
    """Statements pick up the transaction id at execution time."""

    def test_statement_prepared_before_begin_uses_tx_id(self, conn, mock_session):
        stmt = conn.prepare("INSERT INTO t VALUES (?)")
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "write", "rowsAffected": 1})

        stmt.execute([1])

        assert sent_queries(mock_session)[0]["txId"] == "tx-1"

    def test_execute_outside_transaction_has_no_tx_id(self, conn, mock_session):
        mock_session.request.return_value = results({"type": "write"})

        conn.execute("DELETE FROM t")

        assert "txId" not in sent_queries(mock_session)[0]

    def test_execute_does_not_change_state(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "write"})

        conn.execute("DELETE FROM t")

        assert conn.state is ConnectionState.IN_TRANSACTION


class TestLifecycle:
    """Tests for ping, reset, is_valid and close."""

    def test_ping_delegates(self, conn, mock_session):
        mock_session.request.return_value = make_response(text="ok")
        conn.ping()
        assert mock_session.request.call_args.args[0] == "GET"

    def test_reset_rolls_back(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "rollback"})

        conn.reset()

        assert sent_queries(mock_session)[0]["query"] == "ROLLBACK"
        assert conn.tx_id == ""

    def test_reset_failure_is_bad_connection(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.side_effect = requests.exceptions.ConnectionError("gone")

        with pytest.raises(BadConnectionError):
            conn.reset()
        assert conn.tx_id == ""

    def test_reset_when_idle(self, conn, mock_session):
        conn.reset()
        mock_session.request.assert_not_called()

    def test_is_valid(self, conn, mock_session):
        mock_session.request.return_value = make_response(text="OK")
        assert conn.is_valid() is True

        mock_session.request.return_value = make_response(text="starting")
        assert conn.is_valid() is False

    def test_close_rolls_back(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "rollback"})

        conn.close()

        assert sent_queries(mock_session)[0] == {"query": "ROLLBACK", "txId": "tx-1"}
        assert conn.closed is True
        assert conn.is_valid() is False

    def test_close_ignores_rollback_failure(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.side_effect = requests.exceptions.ConnectionError("gone")

        conn.close()

        assert conn.closed is True
        assert conn.tx_id == ""

    def test_closed_connection_rejects_use(self, conn):
        conn.close()

        with pytest.raises(InterfaceError):
            conn.execute("SELECT 1")
        with pytest.raises(InterfaceError):
            conn.begin()
        with pytest.raises(InterfaceError):
            conn.cursor()
        with pytest.raises(InterfaceError):
            conn.commit()
        with pytest.raises(InterfaceError):
            conn.rollback()
        with pytest.raises(InterfaceError):
            conn.reset()

    def test_closing_inside_context_manager(self, conn, mock_session):
        with conn:
            conn.close()

        assert conn.closed is True
        mock_session.request.assert_not_called()

    def test_context_manager_commits_and_closes(self, conn, mock_session):
        begin(conn, mock_session)
        mock_session.request.return_value = results({"type": "commit"})

        with conn:
            pass

        assert sent_queries(mock_session)[0]["query"] == "COMMIT"
        assert conn.closed is True

    def test_owned_client_closed_with_connection(self, client, mock_session):
        Connection(client, owns_client=True).close()
        # Injected sessions are never closed by the client.
        mock_session.close.assert_not_called()
