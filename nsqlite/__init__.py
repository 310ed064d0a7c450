# nsqlite/__init__.py
"""
nsqlite - a PEP 249 DB-API driver for NSQLite servers over HTTP/JSON.

    import nsqlite

    with nsqlite.connect("http://localhost:9876?authToken=secret") as conn:
        cur = conn.cursor()
        cur.execute("SELECT id, name FROM users WHERE id = ?", (1,))
        print(cur.fetchall())

Applications that open many connections should build one `Connector`
(optionally wrapped in a `ConnectionPool`) and share it.
"""

import datetime
import time
from typing import Optional

from nsqlite.config import get_client_config_from_env
from nsqlite.database.connection import Connection, ConnectionState
from nsqlite.database.connector import ConnectionPool, Connector
from nsqlite.database.cursor import Cursor
from nsqlite.database.statement import ExecResult, Rows, Statement
from nsqlite.database.transaction import Transaction
from nsqlite.dsn.connstr import ConnStr
from nsqlite.errors import (
    AuthError,
    BadConnectionError,
    DatabaseError,
    DataError,
    Error,
    HealthError,
    IntegrityError,
    InterfaceError,
    InternalError,
    InvalidProtocolError,
    MalformedInputError,
    MissingHostError,
    NotSupportedError,
    OperationalError,
    ParseError,
    PoolTimeoutError,
    ProgrammingError,
    ProtocolError,
    QueryError,
    ServerError,
    TransportError,
    UnexpectedResponseError,
    Warning,
)
from nsqlite.wire.client import Client
from nsqlite.wire.models import Query, QueryParam

__version__ = "0.1.0"

# PEP 249 module globals
apilevel = "2.0"
threadsafety = 1  # Threads may share the module, but not connections.
paramstyle = "qmark"


def connect(dsn: Optional[str] = None, **client_options) -> Connection:
    """
    Opens a connection with its own HTTP client.

    The client is closed together with the connection. To share one client
    between many connections, use `Connector` instead.
    """
    if dsn is None:
        dsn = get_client_config_from_env()["connection_string"]
    return Connection(Client(dsn, **client_options), owns_client=True)


# --- PEP 249 type objects and constructors ---


class DBAPITypeObject:
    """Compares equal to any declared column type name it covers."""

    def __init__(self, *values: str):
        self.values = frozenset(values)

    def __eq__(self, other):
        if isinstance(other, str):
            return other.upper() in self.values
        return NotImplemented

    def __hash__(self):
        return hash(self.values)


STRING = DBAPITypeObject("TEXT", "VARCHAR", "CHAR", "CLOB", "STRING")
BINARY = DBAPITypeObject("BLOB", "BINARY")
NUMBER = DBAPITypeObject("INTEGER", "INT", "REAL", "FLOAT", "DOUBLE", "NUMERIC", "DECIMAL", "BOOLEAN")
DATETIME = DBAPITypeObject("DATE", "DATETIME", "TIMESTAMP", "TIME")
ROWID = DBAPITypeObject("ROWID")

Date = datetime.date
Time = datetime.time
Timestamp = datetime.datetime
Binary = bytes


def DateFromTicks(ticks):
    return Date(*time.localtime(ticks)[:3])


def TimeFromTicks(ticks):
    return Time(*time.localtime(ticks)[3:6])


def TimestampFromTicks(ticks):
    return Timestamp(*time.localtime(ticks)[:6])


__all__ = [
    "connect",
    "Client",
    "ConnStr",
    "Connection",
    "ConnectionState",
    "ConnectionPool",
    "Connector",
    "Cursor",
    "ExecResult",
    "Query",
    "QueryParam",
    "Rows",
    "Statement",
    "Transaction",
    "apilevel",
    "threadsafety",
    "paramstyle",
    "Warning",
    "Error",
    "InterfaceError",
    "DatabaseError",
    "DataError",
    "OperationalError",
    "IntegrityError",
    "InternalError",
    "ProgrammingError",
    "NotSupportedError",
    "ParseError",
    "InvalidProtocolError",
    "MissingHostError",
    "MalformedInputError",
    "ProtocolError",
    "UnexpectedResponseError",
    "QueryError",
    "TransportError",
    "AuthError",
    "ServerError",
    "HealthError",
    "BadConnectionError",
    "PoolTimeoutError",
    "STRING",
    "BINARY",
    "NUMBER",
    "DATETIME",
    "ROWID",
    "Date",
    "Time",
    "Timestamp",
    "Binary",
    "DateFromTicks",
    "TimeFromTicks",
    "TimestampFromTicks",
    "__version__",
]
