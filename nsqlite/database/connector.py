# nsqlite/database/connector.py
"""
Connection factory and connection pool.

The application builds one `Connector` per server at startup and passes it
to whatever needs connections. The connector parses the connection string
once and owns a single HTTP client that all its connections share; there is
no hidden module-level singleton.

`ConnectionPool` enforces the one-owner-per-connection rule: a connection
is handed to exactly one caller by `acquire()` and only becomes available
again after `release()` has reset it and confirmed the server is healthy.
Idle connections are health-checked again when `acquire()` hands them out.
"""

import threading
from collections import deque
from contextlib import contextmanager
from typing import Deque, Iterator, Optional, Set

import structlog

from nsqlite.config import DEFAULT_TIMEOUT
from nsqlite.database.connection import Connection
from nsqlite.errors import BadConnectionError, InterfaceError, PoolTimeoutError, ProgrammingError
from nsqlite.wire.client import Client

log = structlog.get_logger(__name__)


class Connector:
    """Creates any number of equivalent connections to one server."""

    def __init__(self, connection_string: Optional[str] = None, *, client: Optional[Client] = None, **client_options):
        """
        Args:
            - connection_string (str): Parsed once here. Ignored when `client` is given.
            - client (Client): An existing client to share. It is not closed
                               by `Connector.close()`.
            - **client_options: Passed to `Client` (timeout, pool_size, ...).

        Raises:
            - ProgrammingError: If neither a connection string nor a client is given.
            - ParseError: If the connection string is invalid.
        """
        if client is None:
            if connection_string is None:
                raise ProgrammingError("a connection string or a client is required")
            client = Client(connection_string, **client_options)
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client

    @property
    def client(self) -> Client:
        return self._client

    def connect(self) -> Connection:
        return Connection(self._client)

    def close(self):
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "Connector":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ConnectionPool:
    """
    A bounded pool of connections with check-out/check-in discipline.

    Workflow of a connection's life in the pool:
    1.  `acquire()` pops an idle connection that still passes `is_valid()`
        or opens a new one, blocking while `max_size` connections are
        checked out. Idle connections that fail the check are closed.
    2.  The caller uses it exclusively.
    3.  `release()` rolls back any leftover transaction (`reset()`) and
        checks `is_valid()`. A connection failing either step is closed and
        dropped instead of going back to the idle list.
    """

    def __init__(self, connector: Connector, max_size: int = 10, acquire_timeout: float = DEFAULT_TIMEOUT):
        if max_size < 1:
            raise ProgrammingError("max_size must be at least 1")
        self._connector = connector
        self._max_size = max_size
        self._acquire_timeout = acquire_timeout
        self._slots = threading.BoundedSemaphore(max_size)
        self._lock = threading.Lock()
        self._idle: Deque[Connection] = deque()
        self._in_use: Set[int] = set()
        self._closed = False

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    @property
    def in_use_count(self) -> int:
        with self._lock:
            return len(self._in_use)

    def _pop_valid_idle(self) -> Optional[Connection]:
        while True:
            with self._lock:
                if not self._idle:
                    return None
                conn = self._idle.pop()
            if conn.is_valid():
                return conn
            log.info("Discarding idle connection that failed the health check.")
            conn.close()

    def acquire(self, timeout: Optional[float] = None) -> Connection:
        """
        Checks a connection out of the pool.

        Raises:
            - InterfaceError: If the pool is closed.
            - PoolTimeoutError: If no slot frees up within the timeout.
        """
        if self._closed:
            raise InterfaceError("connection pool is closed")

        wait = self._acquire_timeout if timeout is None else timeout
        if not self._slots.acquire(timeout=wait):
            raise PoolTimeoutError(f"no connection available within {wait} seconds")

        try:
            conn = self._pop_valid_idle()
            if conn is None:
                conn = self._connector.connect()
            with self._lock:
                self._in_use.add(id(conn))
            return conn
        except BaseException:
            self._slots.release()
            raise

    def release(self, conn: Connection):
        """
        Checks a connection back in.

        Raises:
            - ProgrammingError: If the connection was not checked out from this pool.
        """
        with self._lock:
            if id(conn) not in self._in_use:
                raise ProgrammingError("connection was not acquired from this pool")
            self._in_use.discard(id(conn))

        try:
            if self._closed or conn.closed:
                conn.close()
                return
            try:
                conn.reset()
            except BadConnectionError as e:
                log.warning("Discarding connection that failed to reset.", error=str(e))
                conn.close()
                return
            if not conn.is_valid():
                log.info("Discarding connection that failed the health check.")
                conn.close()
                return
            with self._lock:
                self._idle.append(conn)
        finally:
            self._slots.release()

    @contextmanager
    def connection(self, timeout: Optional[float] = None) -> Iterator[Connection]:
        """Context manager that acquires a connection and always releases it."""
        conn = self.acquire(timeout=timeout)
        try:
            yield conn
        finally:
            self.release(conn)

    def close(self):
        """Closes idle connections; connections still in use close on release."""
        self._closed = True
        with self._lock:
            idle = list(self._idle)
            self._idle.clear()
        for conn in idle:
            conn.close()
        log.debug("Connection pool closed.", closed_idle=len(idle))

    def __enter__(self) -> "ConnectionPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
