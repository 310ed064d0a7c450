# nsqlite/wire/client.py
"""
HTTP client for the NSQLite server.

This module owns everything that touches the network. It translates the
stateless HTTP/JSON protocol (`/query`, `/health`, `/version`, `/stats`)
into Python calls and maps every failure onto the package's error taxonomy:

- network trouble, timeouts           -> TransportError
- HTTP 401                            -> AuthError
- any other non-200 status            -> ServerError
- missing, malformed or empty payload -> ProtocolError

Transport tuning (timeouts, connection pool sizing) is passed straight
through to `requests`; nothing here retries on its own.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

import requests
import structlog
from requests.adapters import HTTPAdapter

from nsqlite.config import DEFAULT_POOL_SIZE, DEFAULT_TIMEOUT, mask_sensitive_data
from nsqlite.dsn.connstr import ConnStr
from nsqlite.errors import (
    AuthError,
    HealthError,
    ParseError,
    ProtocolError,
    ServerError,
    TransportError,
)
from nsqlite.wire.models import Query, QueryResponse, Stats, decode_envelope

log = structlog.get_logger(__name__)

HEALTH_BODY_PREVIEW = 100
SERVER_HEADER = "X-Server"
SERVER_NAME = "nsqlite"


class Client:
    """
    Talks to one NSQLite server described by a connection string.

    A single `Client` is meant to be created once by the application and
    shared by every connection to the same server: it holds the parsed
    descriptor and a pooled `requests.Session`, both of which are safe to
    share across threads.
    """

    def __init__(
        self,
        connection_string: str | ConnStr,
        timeout: float = DEFAULT_TIMEOUT,
        pool_size: int = DEFAULT_POOL_SIZE,
        adapter: Optional[HTTPAdapter] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initializes the client and its HTTP session.

        Args:
            - connection_string (str | ConnStr): Where the server lives, e.g.
                                                 "https://db.example.com:9876?authToken=xyz".
            - timeout (float): Default timeout in seconds for every request.
            - pool_size (int): Maximum pooled keep-alive connections per host.
            - adapter (HTTPAdapter): Replaces the default adapter mounted for
                                     http:// and https://.
            - session (requests.Session): Replaces the HTTP session entirely.
                                          The client will not close a session
                                          it did not create.

        Raises:
            - ParseError: If the connection string is invalid.
        """
        if isinstance(connection_string, ConnStr):
            self.conn_str = connection_string
        else:
            try:
                self.conn_str = ConnStr.from_text(connection_string)
            except ParseError as e:
                log.error("Invalid connection string", error=str(e))
                raise

        self.timeout = timeout
        self._owns_session = session is None
        if session is None:
            session = requests.Session()
            if adapter is None:
                adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        elif adapter is not None:
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session

        log.debug(
            "NSQLite client initialized.",
            config=mask_sensitive_data(
                {
                    "url": str(self.conn_str),
                    "auth_token": self.conn_str.auth_token,
                    "timeout": timeout,
                    "pool_size": pool_size,
                }
            ),
        )

    def close(self):
        """Closes the underlying HTTP session if this client created it."""
        if self._owns_session:
            self.session.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # --- Low level helpers ---

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.conn_str.auth_token:
            headers["Authorization"] = self.conn_str.auth_token
        return headers

    def _request(
        self,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """
        Sends an authenticated request and returns the raw response.

        Workflow:
        1.  Builds the URL from the descriptor (the token never goes in the URL).
        2.  Sets the JSON content type and, when configured, the Authorization header.
        3.  Sends the request with the per-call timeout, or the client default.
        4.  Converts any `requests` exception into a `TransportError`.
        """
        url = self.conn_str.build_url(path)
        try:
            return self.session.request(
                method,
                url,
                data=body,
                headers=self._headers(),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.exceptions.RequestException as e:
            log.error(
                "Network error while calling NSQLite.",
                method=method,
                url=url,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise TransportError(f"failed to send HTTP {method} request: {e}") from e

    @staticmethod
    def _check_status(response: requests.Response):
        if response.status_code == 401:
            raise AuthError("authentication failed, please check your credentials")
        if response.status_code != 200:
            raise ServerError(
                f"unwanted response status: {response.status_code} {response.reason or ''}".rstrip(),
                status_code=response.status_code,
            )

    @staticmethod
    def _decode_json(response: requests.Response) -> Any:
        try:
            # Raw bytes: json detects the UTF encoding itself, and Python ints
            # keep large ids exact.
            return json.loads(response.content)
        except ValueError as e:
            raise ProtocolError(f"failed to decode response: {e}") from e

    # --- Queries ---

    def send_queries(
        self, queries: Sequence[Query], timeout: Optional[float] = None
    ) -> List[QueryResponse]:
        """
        Sends a batch of queries in a single request.

        Args:
            - queries (Sequence[Query]): The batch, executed by the server in order.
            - timeout (float): Overrides the client timeout for this call.

        Returns:
            - One response per query, in the same order as the input.

        Raises:
            - TransportError, AuthError, ServerError, ProtocolError.
        """
        if not queries:
            return []

        body = json.dumps([query.to_wire() for query in queries]).encode("utf-8")
        response = self._request("POST", "/query", body=body, timeout=timeout)
        self._check_status(response)

        results = decode_envelope(self._decode_json(response))
        if not results:
            raise ProtocolError("empty response")
        if len(results) != len(queries):
            log.warning(
                "Result count differs from query count.",
                queries=len(queries),
                results=len(results),
            )
        return results

    def send_query(self, query: Query, timeout: Optional[float] = None) -> QueryResponse:
        """Sends a single query and returns its response."""
        return self.send_queries([query], timeout=timeout)[0]

    # --- Server endpoints ---

    def ping(self, timeout: Optional[float] = None):
        """
        Checks that the server is alive.

        The `/health` body must be "ok" (any case). The `X-Server` header,
        when present, must name NSQLite; its absence is not a failure.

        Raises:
            - HealthError: If the server does not report itself healthy.
            - AuthError, TransportError.
        """
        response = self._request("GET", "/health", timeout=timeout)
        if response.status_code == 401:
            raise AuthError("authentication failed, please check your credentials")
        if response.status_code != 200:
            raise HealthError(
                f"unwanted response status {response.status_code} {response.reason or ''}".rstrip()
            )

        body = response.text or ""
        if body.strip().lower() != "ok":
            if len(body) > HEALTH_BODY_PREVIEW:
                body = body[:HEALTH_BODY_PREVIEW] + "..."
            raise HealthError(f'health check expected to return "OK" but got "{body}"')

        server = response.headers.get(SERVER_HEADER)
        if server is not None and server.lower() != SERVER_NAME:
            raise HealthError(
                f'health check expected NSQLite in {SERVER_HEADER} header but got "{server}"'
            )

    def is_healthy(self, timeout: Optional[float] = None) -> bool:
        """Returns True when `ping` succeeds, logging the reason otherwise."""
        try:
            self.ping(timeout=timeout)
        except (HealthError, AuthError, TransportError) as e:
            log.warning("NSQLite server is not healthy.", url=str(self.conn_str), error=str(e))
            return False
        return True

    def get_version(self, timeout: Optional[float] = None) -> str:
        """Returns the server version string from `GET /version`."""
        response = self._request("GET", "/version", timeout=timeout)
        self._check_status(response)
        return response.text

    def get_stats(self, timeout: Optional[float] = None) -> Stats:
        """Returns the aggregate and per-minute counters from `GET /stats`."""
        response = self._request("GET", "/stats", timeout=timeout)
        self._check_status(response)
        return Stats.from_dict(self._decode_json(response))
