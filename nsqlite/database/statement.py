# nsqlite/database/statement.py
"""
Prepared statements and their results.

NSQLite has no server-side prepared statements or cursors. A `Statement`
is simply the SQL text bound to a connection, and every execution is one
HTTP round trip. Result rows arrive in full with the response and are
buffered in a `Rows` object that hands them out one at a time.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Sequence, Tuple, Type, Union

from nsqlite.database.base_connector import Params
from nsqlite.errors import QueryError, UnexpectedResponseError
from nsqlite.wire.models import (
    ErrorResponse,
    Query,
    QueryResponse,
    ReadResponse,
    WriteResponse,
    to_query_params,
)

if TYPE_CHECKING:
    from nsqlite.database.connection import Connection


def expect_response(
    response: QueryResponse,
    expected: Sequence[Type],
    action: str,
    query: Optional[str] = None,
):
    """
    Checks that a response has one of the expected kinds.

    Raises:
        - QueryError: If the server answered with an `error` result.
        - UnexpectedResponseError: If the kind is anything else not expected.
    """
    if isinstance(response, ErrorResponse):
        raise QueryError(f"failed to {action}: {response.message}", query=query)
    if not isinstance(response, tuple(expected)):
        raise UnexpectedResponseError(
            expected="/".join(cls.kind.value for cls in expected),
            got=response.kind.value,
        )
    return response


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a statement that wrote data."""

    last_insert_id: int = 0
    rows_affected: int = 0
    columns: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)


class Rows:
    """
    Buffered result rows of a read query.

    Iterating yields one tuple per row and stops after the last one.
    Declared column types are advisory: values are already typed by JSON
    decoding and are never coerced here.
    """

    def __init__(self, columns: Sequence[str], types: Sequence[str], values: Sequence[Sequence[Any]]):
        self._columns = list(columns)
        self._types = list(types)
        self._values = values
        self._index = 0
        self._closed = False

    @property
    def columns(self) -> List[str]:
        return self._columns

    @property
    def types(self) -> List[str]:
        return self._types

    def __len__(self) -> int:
        return len(self._values)

    def column_type_database_type_name(self, index: int) -> str:
        """Returns the upper-cased declared type of a column, or "" if unknown."""
        if index < 0 or index >= len(self._types):
            return ""
        return str(self._types[index] or "").upper()

    def __iter__(self) -> Iterator[Tuple[Any, ...]]:
        return self

    def __next__(self) -> Tuple[Any, ...]:
        if self._closed or self._index >= len(self._values):
            raise StopIteration
        row = self._values[self._index]
        self._index += 1
        return tuple(row)

    def close(self):
        self._closed = True


class Statement:
    """
    A SQL statement bound to a connection.

    The connection's transaction id is read at execution time, not at
    prepare time, so a statement prepared before `begin()` runs inside the
    transaction when it is executed afterwards.
    """

    def __init__(self, connection: "Connection", sql: str):
        self._connection = connection
        self._sql = sql

    @property
    def sql(self) -> str:
        return self._sql

    def num_input(self) -> int:
        # The server binds parameters; the count is not known client side.
        return -1

    def _build_query(self, params: Params) -> Query:
        return Query(
            text=self._sql,
            params=tuple(to_query_params(params)),
            tx_id=self._connection.tx_id,
        )

    def run(self, params: Params = None, timeout: Optional[float] = None) -> Union[ReadResponse, WriteResponse]:
        """Sends the statement and accepts either a `read` or a `write` result."""
        self._connection._check_open()
        response = self._connection.client.send_query(self._build_query(params), timeout=timeout)
        return expect_response(response, (ReadResponse, WriteResponse), "execute query", self._sql)

    def execute(self, params: Params = None, timeout: Optional[float] = None) -> ExecResult:
        """Runs a statement that writes data and returns its `ExecResult`."""
        self._connection._check_open()
        response = self._connection.client.send_query(self._build_query(params), timeout=timeout)
        response = expect_response(response, (WriteResponse,), "execute query", self._sql)
        return ExecResult(
            last_insert_id=response.last_insert_id,
            rows_affected=response.rows_affected,
            columns=response.columns,
            rows=response.rows,
        )

    def query(self, params: Params = None, timeout: Optional[float] = None) -> Rows:
        """Runs a statement that reads data and returns its buffered `Rows`."""
        self._connection._check_open()
        response = self._connection.client.send_query(self._build_query(params), timeout=timeout)
        response = expect_response(response, (ReadResponse,), "execute query", self._sql)
        return Rows(response.columns, response.types, response.rows)

    def close(self):
        """Nothing to release; kept for interface symmetry."""
