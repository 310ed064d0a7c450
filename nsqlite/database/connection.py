# nsqlite/database/connection.py
"""
Stateful connection on top of the stateless NSQLite HTTP protocol.

Every HTTP call to the server is independent. What makes a sequence of
calls a transaction is the transaction id the server hands out on BEGIN:
the connection keeps exactly one such id and attaches it to every query it
sends until COMMIT or ROLLBACK. That id is the connection's only mutable
state, which gives two states:

    IDLE            no transaction id
    IN_TRANSACTION  a transaction id is set

A connection must be owned by one caller at a time (see `ConnectionPool`);
there is no internal locking.
"""

from enum import Enum
from typing import Optional, Type

import structlog

from nsqlite.database.base_connector import DatabaseConnector, Params
from nsqlite.database.cursor import Cursor
from nsqlite.database.statement import ExecResult, Rows, Statement, expect_response
from nsqlite.database.transaction import Transaction
from nsqlite.errors import (
    BadConnectionError,
    Error,
    InterfaceError,
    ProgrammingError,
    ProtocolError,
)
from nsqlite.wire.client import Client
from nsqlite.wire.models import BeginResponse, CommitResponse, Query, RollbackResponse

log = structlog.get_logger(__name__)


class ConnectionState(str, Enum):
    IDLE = "idle"
    IN_TRANSACTION = "in_transaction"


class Connection(DatabaseConnector):
    """
    A logical connection to an NSQLite server.

    The HTTP client is shared: many connections can use the same `Client`.
    Closing a connection never closes the client unless `owns_client` is set,
    which `nsqlite.connect()` does for its throwaway clients.
    """

    def __init__(self, client: Client, owns_client: bool = False):
        self._client = client
        self._owns_client = owns_client
        # Empty string means no transaction is active.
        self._tx_id = ""
        self._closed = False

    @property
    def client(self) -> Client:
        return self._client

    @property
    def tx_id(self) -> str:
        return self._tx_id

    @property
    def in_transaction(self) -> bool:
        return bool(self._tx_id)

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.IN_TRANSACTION if self._tx_id else ConnectionState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self):
        if self._closed:
            raise InterfaceError("connection is closed")

    # --- Statements ---

    def prepare(self, sql: str) -> Statement:
        self._check_open()
        return Statement(self, sql)

    def execute(self, sql: str, params: Params = None, timeout: Optional[float] = None) -> ExecResult:
        return self.prepare(sql).execute(params, timeout=timeout)

    def query(self, sql: str, params: Params = None, timeout: Optional[float] = None) -> Rows:
        return self.prepare(sql).query(params, timeout=timeout)

    def cursor(self) -> Cursor:
        """Returns a new PEP 249 cursor bound to this connection."""
        self._check_open()
        return Cursor(self)

    # --- Transactions ---

    def begin(self, timeout: Optional[float] = None) -> Transaction:
        """
        Starts a transaction.

        Workflow:
        1.  Refuses to start when a transaction is already active, so an
            existing transaction id is never overwritten.
        2.  Sends `BEGIN;` and expects a `begin` result.
        3.  Stores the returned transaction id; the connection is now
            IN_TRANSACTION.

        Raises:
            - ProgrammingError: If a transaction is already active.
            - QueryError: If the server answered with an error.
            - UnexpectedResponseError: If the server answered with another kind.
        """
        self._check_open()
        if self._tx_id:
            raise ProgrammingError("a transaction is already active on this connection")

        response = self._client.send_query(Query(text="BEGIN;"), timeout=timeout)
        response = expect_response(response, (BeginResponse,), "begin transaction")
        if not response.tx_id:
            raise ProtocolError("begin response did not include a transaction id")

        self._tx_id = response.tx_id
        log.debug("Transaction started.", tx_id=self._tx_id)
        return Transaction(self, self._tx_id)

    def _end_transaction(self, sql: str, expected: Type, action: str, timeout: Optional[float]):
        if not self._tx_id:
            return

        tx_id = self._tx_id
        try:
            response = self._client.send_query(Query(text=sql, tx_id=tx_id), timeout=timeout)
        finally:
            # Always cleared, even when the call fails.
            self._tx_id = ""

        expect_response(response, (expected,), action)
        log.debug("Transaction finished.", tx_id=tx_id, outcome=expected.kind.value)

    def commit(self, timeout: Optional[float] = None):
        """Commits the active transaction, if any."""
        self._check_open()
        self._end_transaction("COMMIT", CommitResponse, "commit transaction", timeout)

    def rollback(self, timeout: Optional[float] = None):
        """Rolls back the active transaction, if any."""
        self._check_open()
        self._rollback(timeout)

    def _rollback(self, timeout: Optional[float] = None):
        self._end_transaction("ROLLBACK", RollbackResponse, "rollback transaction", timeout)

    # --- Health and lifecycle ---

    def ping(self, timeout: Optional[float] = None):
        self._check_open()
        self._client.ping(timeout=timeout)

    def reset(self, timeout: Optional[float] = None):
        """
        Resets session state before the connection is reused.

        Raises:
            - InterfaceError: If the connection is closed.
            - BadConnectionError: If rolling back a leftover transaction failed.
        """
        self._check_open()
        try:
            self._rollback(timeout)
        except Error as e:
            raise BadConnectionError(f"error resetting session: {e}") from e

    def is_valid(self) -> bool:
        if self._closed:
            return False
        return self._client.is_healthy()

    def close(self):
        """
        Closes the connection, rolling back an active transaction.

        A failed rollback is logged and ignored: the caller cannot act on it.
        """
        if self._closed:
            return
        try:
            self._rollback()
        except Error as e:
            log.warning("Rollback on close failed.", error_type=type(e).__name__, error=str(e))
        finally:
            self._closed = True
            if self._owns_client:
                self._client.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._closed:
            return
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            self.close()
