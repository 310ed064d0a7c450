# nsqlite/database/cursor.py
"""
PEP 249 cursor for NSQLite connections.

The cursor is a thin layer over `Statement`: it runs a statement, keeps the
last result around, and exposes it through the DB-API fetch methods.
Transactions are not started through a cursor; use `Connection.begin()`.
"""

from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Tuple

import structlog

from nsqlite.database.base_connector import Params
from nsqlite.database.statement import Rows, expect_response
from nsqlite.errors import InterfaceError, ProgrammingError
from nsqlite.wire.models import Query, ReadResponse, WriteResponse, to_query_params

if TYPE_CHECKING:
    from nsqlite.database.connection import Connection

log = structlog.get_logger(__name__)

Description = Tuple[str, str, None, None, None, None, None]


class Cursor:
    """DB-API 2.0 cursor. Not safe for concurrent use."""

    arraysize = 1

    def __init__(self, connection: "Connection"):
        self._connection = connection
        self._rows: Optional[Rows] = None
        self._closed = False
        self.description: Optional[List[Description]] = None
        self.rowcount = -1
        self.lastrowid: Optional[int] = None

    @property
    def connection(self) -> "Connection":
        return self._connection

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self):
        if self._closed:
            raise InterfaceError("cursor is closed")
        self._connection._check_open()

    def _reset(self):
        self._rows = None
        self.description = None
        self.rowcount = -1
        self.lastrowid = None

    def _load(self, response: ReadResponse | WriteResponse):
        if isinstance(response, ReadResponse):
            rows = Rows(response.columns, response.types, response.rows)
            self._rows = rows
            self.rowcount = len(rows)
            self.description = [
                (name, rows.column_type_database_type_name(i), None, None, None, None, None)
                for i, name in enumerate(rows.columns)
            ]
            return

        self.rowcount = response.rows_affected
        self.lastrowid = response.last_insert_id
        if response.columns:
            # RETURNING clauses bring rows back with a write.
            self._rows = Rows(response.columns, [], response.rows)
            self.description = [
                (name, "", None, None, None, None, None) for name in response.columns
            ]

    def execute(self, operation: str, parameters: Params = None, timeout: Optional[float] = None) -> "Cursor":
        """
        Executes a single statement and makes its result available for fetching.

        Args:
            - operation (str): SQL text with `?` placeholders (or named ones).
            - parameters (Sequence | Mapping): Values for the placeholders.
            - timeout (float): Per-call deadline in seconds.

        Returns:
            - The cursor itself, so calls can be chained.
        """
        self._check_open()
        self._reset()
        response = self._connection.prepare(operation).run(parameters, timeout=timeout)
        self._load(response)
        return self

    def executemany(
        self,
        operation: str,
        seq_of_parameters: Iterable[Params],
        timeout: Optional[float] = None,
    ) -> "Cursor":
        """
        Executes a statement once per parameter set, in a single batch request.

        `rowcount` is the total number of affected rows and `lastrowid` is
        the insert id reported for the last statement of the batch.
        """
        self._check_open()
        self._reset()

        tx_id = self._connection.tx_id
        queries = [
            Query(text=operation, params=tuple(to_query_params(params)), tx_id=tx_id)
            for params in seq_of_parameters
        ]
        if not queries:
            self.rowcount = 0
            return self

        responses = self._connection.client.send_queries(queries, timeout=timeout)
        total = 0
        for response in responses:
            response = expect_response(response, (WriteResponse, ReadResponse), "execute query", operation)
            if isinstance(response, WriteResponse):
                total += response.rows_affected
                self.lastrowid = response.last_insert_id
        self.rowcount = total
        log.debug("Executed batch.", statements=len(queries), rows_affected=total)
        return self

    def _require_result(self) -> Rows:
        self._check_open()
        if self._rows is None:
            raise ProgrammingError("no result set, execute a query first")
        return self._rows

    def fetchone(self) -> Optional[Tuple[Any, ...]]:
        return next(self._require_result(), None)

    def fetchmany(self, size: Optional[int] = None) -> List[Tuple[Any, ...]]:
        rows = self._require_result()
        size = self.arraysize if size is None else size
        result = []
        if size <= 0:
            return result
        for row in rows:
            result.append(row)
            if len(result) >= size:
                break
        return result

    def fetchall(self) -> List[Tuple[Any, ...]]:
        return list(self._require_result())

    def __iter__(self):
        return self

    def __next__(self) -> Tuple[Any, ...]:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def setinputsizes(self, sizes):
        pass

    def setoutputsize(self, size, column=None):
        pass

    def close(self):
        if self._rows is not None:
            self._rows.close()
        self._closed = True

    def __enter__(self) -> "Cursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
