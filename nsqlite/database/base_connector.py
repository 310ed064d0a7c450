# nsqlite/database/base_connector.py
"""
Defines the abstract base class for NSQLite database connections.

This module provides the `DatabaseConnector` Abstract Base Class (ABC).
It spells out the relational-connection lifecycle that callers rely on:
prepare, execute, query, begin/commit/rollback, ping, session reset,
validity check and close. Keeping that contract separate from the HTTP
implementation lets pools and test doubles depend on the interface only.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence, Union

Params = Optional[Union[Sequence[Any], Mapping[str, Any]]]


class DatabaseConnector(ABC):
    """
    Abstract Base Class that defines the interface for database connections.

    Any class that inherits from DatabaseConnector MUST implement all methods
    decorated with `@abstractmethod`. Implementations are stateful and are
    NOT safe for concurrent use: exactly one caller owns a connection at a time.
    """

    @abstractmethod
    def prepare(self, sql: str):
        """
        Creates a prepared statement bound to this connection.

        Args:
            - sql (str): The SQL text of the statement.

        Returns:
            - A statement object exposing `execute` and `query`.
        """

    @abstractmethod
    def execute(self, sql: str, params: Params = None, timeout: Optional[float] = None):
        """
        Executes a statement that does not return rows (INSERT, UPDATE, DDL).

        Args:
            - sql (str): The SQL statement to execute.
            - params (Sequence | Mapping): Positional or named parameters to be
                                           bound safely by the server.
            - timeout (float): Per-call deadline in seconds.

        Returns:
            - An object exposing `last_insert_id` and `rows_affected`.
        """

    @abstractmethod
    def query(self, sql: str, params: Params = None, timeout: Optional[float] = None):
        """
        Executes a statement that returns rows (SELECT).

        Returns:
            - An iterable of rows, one tuple per row, plus column metadata.
        """

    @abstractmethod
    def begin(self, timeout: Optional[float] = None):
        """
        Starts a transaction and returns a handle for it.

        Subsequent statements on this connection run inside the transaction
        until `commit` or `rollback` is called.
        """

    @abstractmethod
    def commit(self, timeout: Optional[float] = None):
        """
        Commits the current transaction.

        A no-op when no transaction is active, so callers may commit
        unconditionally on the way out.
        """

    @abstractmethod
    def rollback(self, timeout: Optional[float] = None):
        """
        Rolls back the current transaction, discarding any recent changes.

        A no-op when no transaction is active.
        """

    @abstractmethod
    def ping(self, timeout: Optional[float] = None):
        """Verifies that the server is reachable; raises when it is not."""

    @abstractmethod
    def reset(self, timeout: Optional[float] = None):
        """
        Prepares a previously used connection for reuse.

        Must raise `BadConnectionError` when the connection cannot be reset,
        signalling the owner to discard it instead of reusing it.
        """

    @abstractmethod
    def is_valid(self) -> bool:
        """Last-chance health gate before a connection is reused."""

    @abstractmethod
    def close(self):
        """
        Closes the connection and releases any resources.

        An active transaction is rolled back on a best-effort basis.
        """
