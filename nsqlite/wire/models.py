# nsqlite/wire/models.py
"""
Request and response shapes of the NSQLite HTTP/JSON wire protocol.

Outgoing:
    POST /query  [{"query": "...", "params": [{"name": "...", "value": ...}], "txId": "..."}]

Incoming:
    {"results": [{"type": "read", "time": 0.1, "columns": [...], "types": [...], "values": [[...]]}]}

Each result is decoded into exactly one response class, keyed by its `type`.
A read path can therefore never reach for write-only fields by accident.
"""

import base64
import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from nsqlite.errors import ProgrammingError, ProtocolError


class ResponseKind(str, Enum):
    """Discriminator of a result in the response envelope."""

    ERROR = "error"
    BEGIN = "begin"
    COMMIT = "commit"
    ROLLBACK = "rollback"
    WRITE = "write"
    READ = "read"


# --- Requests ---


def encode_value(value: Any) -> Any:
    """
    Converts a Python parameter value into its JSON wire form.

    None, bool, int, float and str are sent as-is. Binary values become
    base64 strings and dates/times become ISO-8601 strings.

    Raises:
        - ProgrammingError: For any other type.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    raise ProgrammingError(f"unsupported parameter type: {type(value).__name__}")


@dataclass(frozen=True)
class QueryParam:
    """A single query parameter; `name` is empty for positional parameters."""

    value: Any
    name: str = ""

    def to_wire(self) -> Dict[str, Any]:
        wire = {"value": encode_value(self.value)}
        if self.name:
            wire["name"] = self.name
        return wire


@dataclass(frozen=True)
class Query:
    """
    A query to send to the remote server.

    Attributes:
        - text (str): The SQL text (required).
        - params (tuple): Ordered `QueryParam`s for a parameterized query.
        - tx_id (str): Sends the query within that transaction when not empty.
    """

    text: str
    params: Sequence[QueryParam] = ()
    tx_id: str = ""

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"query": self.text}
        if self.params:
            wire["params"] = [param.to_wire() for param in self.params]
        if self.tx_id:
            wire["txId"] = self.tx_id
        return wire


def to_query_params(params: Optional[Union[Sequence[Any], Mapping[str, Any]]]) -> List[QueryParam]:
    """
    Normalizes DB-API style parameters into `QueryParam`s.

    A mapping produces named parameters, any other sequence produces
    positional ones. Items that already are `QueryParam`s are kept as-is.
    """
    if params is None:
        return []
    if isinstance(params, Mapping):
        return [QueryParam(value=value, name=str(name)) for name, value in params.items()]
    if isinstance(params, (str, bytes)):
        raise ProgrammingError("parameters must be a sequence or a mapping, not a string")
    return [p if isinstance(p, QueryParam) else QueryParam(value=p) for p in params]


# --- Responses ---


@dataclass(frozen=True)
class ErrorResponse:
    message: str
    time: float = 0.0
    kind = ResponseKind.ERROR


@dataclass(frozen=True)
class BeginResponse:
    tx_id: str
    time: float = 0.0
    kind = ResponseKind.BEGIN


@dataclass(frozen=True)
class CommitResponse:
    time: float = 0.0
    kind = ResponseKind.COMMIT


@dataclass(frozen=True)
class RollbackResponse:
    time: float = 0.0
    kind = ResponseKind.ROLLBACK


@dataclass(frozen=True)
class WriteResponse:
    """Result of a statement that changed data; RETURNING rows are optional."""

    last_insert_id: int = 0
    rows_affected: int = 0
    columns: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    time: float = 0.0
    kind = ResponseKind.WRITE


@dataclass(frozen=True)
class ReadResponse:
    """Result of a statement that returns rows."""

    columns: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    time: float = 0.0
    kind = ResponseKind.READ


QueryResponse = Union[
    ErrorResponse,
    BeginResponse,
    CommitResponse,
    RollbackResponse,
    WriteResponse,
    ReadResponse,
]


def _list(item: Mapping[str, Any], key: str) -> list:
    value = item.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ProtocolError(f"field {key!r} must be a list, got {type(value).__name__}")
    return value


def _int(item: Mapping[str, Any], key: str) -> int:
    value = item.get(key) or 0
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ProtocolError(f"field {key!r} must be a number")
    try:
        # Strings and floats are accepted but ints are never routed through float.
        return value if isinstance(value, int) else int(value)
    except ValueError as e:
        raise ProtocolError(f"field {key!r} must be a number: {value!r}") from e


def decode_query_response(item: Any) -> QueryResponse:
    """
    Decodes one element of the `results` array into its response class.

    Raises:
        - ProtocolError: If the element is not an object or has an unknown type.
    """
    if not isinstance(item, Mapping):
        raise ProtocolError(f"result must be an object, got {type(item).__name__}")

    try:
        kind = ResponseKind(item.get("type"))
    except ValueError as e:
        raise ProtocolError(f"unknown response type: {item.get('type')!r}") from e

    elapsed = item.get("time") or 0.0

    if kind is ResponseKind.ERROR:
        return ErrorResponse(message=str(item.get("error") or ""), time=elapsed)
    if kind is ResponseKind.BEGIN:
        return BeginResponse(tx_id=str(item.get("txId") or ""), time=elapsed)
    if kind is ResponseKind.COMMIT:
        return CommitResponse(time=elapsed)
    if kind is ResponseKind.ROLLBACK:
        return RollbackResponse(time=elapsed)
    if kind is ResponseKind.WRITE:
        return WriteResponse(
            last_insert_id=_int(item, "lastInsertId"),
            rows_affected=_int(item, "rowsAffected"),
            columns=_list(item, "columns"),
            rows=_list(item, "values"),
            time=elapsed,
        )
    return ReadResponse(
        columns=_list(item, "columns"),
        types=_list(item, "types"),
        rows=_list(item, "values"),
        time=elapsed,
    )


def decode_envelope(body: Any) -> List[QueryResponse]:
    """Decodes a `{"results": [...]}` envelope, preserving result order."""
    if not isinstance(body, Mapping) or "results" not in body:
        raise ProtocolError("response envelope is missing the 'results' field")
    results = body["results"]
    if not isinstance(results, list):
        raise ProtocolError("'results' must be a list")
    return [decode_query_response(item) for item in results]


# --- Stats ---


@dataclass(frozen=True)
class StatsCounters:
    reads: int = 0
    writes: int = 0
    begins: int = 0
    commits: int = 0
    rollbacks: int = 0
    errors: int = 0
    http_requests: int = 0

    @classmethod
    def _counters(cls, data: Mapping[str, Any]) -> Dict[str, int]:
        return {
            "reads": _int(data, "reads"),
            "writes": _int(data, "writes"),
            "begins": _int(data, "begins"),
            "commits": _int(data, "commits"),
            "rollbacks": _int(data, "rollbacks"),
            "errors": _int(data, "errors"),
            "http_requests": _int(data, "httpRequests"),
        }


@dataclass(frozen=True)
class StatsTotals(StatsCounters):
    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StatsTotals":
        return cls(**cls._counters(data))


@dataclass(frozen=True)
class StatsStat(StatsCounters):
    """Counters for a single minute."""

    minute: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StatsStat":
        return cls(minute=str(data.get("minute") or ""), **cls._counters(data))


@dataclass(frozen=True)
class Stats:
    """Aggregate and per-minute counters reported by `GET /stats`."""

    started_at: str = ""
    uptime: str = ""
    queued_writes: int = 0
    queued_http_requests: int = 0
    totals: StatsTotals = field(default_factory=StatsTotals)
    stats: List[StatsStat] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Stats":
        if not isinstance(data, Mapping):
            raise ProtocolError("stats response must be an object")
        totals = data.get("totals") or {}
        per_minute = _list(data, "stats")
        if not isinstance(totals, Mapping) or not all(isinstance(s, Mapping) for s in per_minute):
            raise ProtocolError("malformed stats response")
        return cls(
            started_at=str(data.get("startedAt") or ""),
            uptime=str(data.get("uptime") or ""),
            queued_writes=_int(data, "queuedWrites"),
            queued_http_requests=_int(data, "queuedHttpRequests"),
            totals=StatsTotals.from_dict(totals),
            stats=[StatsStat.from_dict(s) for s in per_minute],
        )
