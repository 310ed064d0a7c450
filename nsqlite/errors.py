# nsqlite/errors.py
"""
Centralized exception types for the NSQLite client.

The hierarchy follows PEP 249 so that generic DB-API code can catch
`nsqlite.Error`, `nsqlite.OperationalError`, and friends without knowing
anything about HTTP. The more specific classes below let callers tell apart
a bad connection string, a network failure, a credential problem, and a
server that speaks an unexpected dialect of the wire protocol.
"""


class Warning(Exception):  # noqa: A001 - name mandated by PEP 249
    """Important warnings such as data truncation."""


class Error(Exception):
    """Base class for every error raised by this package."""


class InterfaceError(Error):
    """Errors related to the client interface rather than the database."""


class DatabaseError(Error):
    """Errors related to the database."""


# --- Connection string errors ---


class ParseError(InterfaceError, ValueError):
    """Raised when a connection string cannot be turned into a descriptor."""


class InvalidProtocolError(ParseError):
    """The scheme is not exactly "http" or "https"."""


class MissingHostError(ParseError):
    """The host component of the connection string is empty."""


class MalformedInputError(ParseError):
    """The text cannot be parsed as a URL at all."""


# --- Wire protocol errors ---


class ProtocolError(InterfaceError):
    """
    The response envelope is missing, malformed, or empty.

    This indicates a contract mismatch with the remote engine and is always
    fatal to the call that produced it.
    """


class UnexpectedResponseError(InterfaceError):
    """The response kind does not match the operation that produced it."""

    def __init__(self, expected: str, got: str):
        self.expected = expected
        self.got = got
        super().__init__(f"unexpected response type: {got} (expected {expected})")


class QueryError(DatabaseError):
    """The server answered a query with an `error` result."""

    def __init__(self, message: str, query: str | None = None):
        self.query = query
        super().__init__(message)


class OperationalError(DatabaseError):
    """Errors related to the operation of the database connection."""


class TransportError(OperationalError):
    """Network failure, timeout, or cancellation of an HTTP call."""


class AuthError(OperationalError):
    """The server rejected the configured auth token (HTTP 401)."""


class ServerError(OperationalError):
    """The server answered with a non-success status other than 401."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class HealthError(OperationalError):
    """The health check did not confirm a live NSQLite server."""


class BadConnectionError(OperationalError):
    """The connection could not be reset and must be discarded, not reused."""


class PoolTimeoutError(OperationalError):
    """No connection became available in the pool before the timeout."""


class ProgrammingError(DatabaseError):
    """Misuse of the API: bad parameters, closed objects, nested transactions."""


class DataError(DatabaseError):
    """Problems with the processed data."""


class IntegrityError(DatabaseError):
    """Relational integrity of the database is affected."""


class InternalError(DatabaseError):
    """The database encountered an internal error."""


class NotSupportedError(DatabaseError):
    """A method or database API was used which is not supported."""
