# nsqlite/database/transaction.py
"""Transaction handle returned by `Connection.begin()`."""

from typing import TYPE_CHECKING, Optional

from nsqlite.errors import ProgrammingError

if TYPE_CHECKING:
    from nsqlite.database.connection import Connection


class Transaction:
    """
    Thin wrapper around the connection that started the transaction.

    Commit and rollback delegate to the connection, which clears its active
    transaction id afterwards. Once that happens the handle is finished:
    further calls do nothing while the connection is idle, and raise
    `ProgrammingError` once the connection has begun another transaction.

    Used as a context manager, the transaction commits on a clean exit and
    rolls back when an exception escapes.
    """

    def __init__(self, connection: "Connection", tx_id: str):
        self._connection = connection
        self._tx_id = tx_id

    @property
    def connection(self) -> "Connection":
        return self._connection

    @property
    def tx_id(self) -> str:
        return self._tx_id

    def _check_current(self):
        current = self._connection.tx_id
        if current and current != self._tx_id:
            raise ProgrammingError(
                f"transaction {self._tx_id} has already ended; the connection is in transaction {current}"
            )

    def commit(self, timeout: Optional[float] = None):
        self._check_current()
        self._connection.commit(timeout=timeout)

    def rollback(self, timeout: Optional[float] = None):
        self._check_current()
        self._connection.rollback(timeout=timeout)

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
