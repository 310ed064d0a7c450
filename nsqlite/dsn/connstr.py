# nsqlite/dsn/connstr.py
"""
Parsing and rendering of NSQLite connection strings.

A connection string looks like a URL:

    protocol://host[:port][?authToken=TOKEN]

This module turns that text into a `ConnStr` descriptor and knows how to
build request URLs from it. The auth token is deliberately kept out of every
URL and display form: it travels in the `Authorization` header instead.
"""

from dataclasses import dataclass, field
from urllib.parse import parse_qs, urlsplit

from nsqlite.errors import InvalidProtocolError, MalformedInputError, MissingHostError

DEFAULT_PROTOCOL = "http"
DEFAULT_HOST = "localhost"
DEFAULT_PORT = "9876"
VALID_PROTOCOLS = ("http", "https")


@dataclass
class ConnStr:
    """
    A connection string divided into its parts.

    Attributes:
        - protocol (str): Either "http" or "https" (default "http").
        - host (str): IP address or domain name without protocol and port
                      (default "localhost").
        - port (str): Port number of the server (default "9876").
        - auth_token (str): Token sent on every request; empty means none.

    Defaults are filled in lazily, exactly once, the first time a URL or the
    display form is built. After that the field values are observable through
    plain attribute access.
    """

    protocol: str = ""
    host: str = ""
    port: str = ""
    auth_token: str = field(default="", repr=False)
    _defaults_applied: bool = field(default=False, init=False, repr=False, compare=False)

    @classmethod
    def from_text(cls, text: str) -> "ConnStr":
        """
        Parses a connection string into a descriptor.

        Workflow:
        1.  Rejects text that has no "://" separator (it is not URL-shaped).
        2.  Splits the URL with `urllib.parse.urlsplit`.
        3.  Validates the scheme and the host.
        4.  Falls back to the default port when none is given.
        5.  Reads the first `authToken` query value, if any.

        Args:
            - text (str): The connection string, e.g. "https://db.example.com?authToken=xyz".

        Returns:
            - A fully populated `ConnStr`.

        Raises:
            - MalformedInputError: If the text cannot be parsed as a URL.
            - InvalidProtocolError: If the scheme is not http or https.
            - MissingHostError: If the host component is empty.
        """
        if not isinstance(text, str) or "://" not in text:
            raise MalformedInputError(f"malformed connection string: {text!r}")

        try:
            parsed = urlsplit(text)
            # Accessing .port validates it (numeric and in range).
            port = parsed.port
        except ValueError as e:
            raise MalformedInputError(f"malformed connection string: {e}") from e

        if parsed.scheme not in VALID_PROTOCOLS:
            raise InvalidProtocolError("invalid protocol, must be http or https")

        host = parsed.hostname or ""
        if not host:
            raise MissingHostError("host is required")

        query = parse_qs(parsed.query, keep_blank_values=True)
        auth_token = query.get("authToken", [""])[0]

        return cls(
            protocol=parsed.scheme,
            host=host,
            port=str(port) if port is not None else DEFAULT_PORT,
            auth_token=auth_token,
        )

    def _set_defaults_if_empty(self):
        if self._defaults_applied:
            return
        if not self.protocol:
            self.protocol = DEFAULT_PROTOCOL
        if not self.host:
            self.host = DEFAULT_HOST
        if not self.port:
            self.port = DEFAULT_PORT
        self._defaults_applied = True

    def _netloc(self) -> str:
        host = self.host
        # IPv6 literals need brackets once a port is appended.
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{host}:{self.port}"

    def base_url(self) -> str:
        """Returns `protocol://host:port`, never including the auth token."""
        self._set_defaults_if_empty()
        return f"{self.protocol}://{self._netloc()}"

    def to_display_string(self) -> str:
        """Returns the base URL, with `?authToken=****` when a token is set."""
        base = self.base_url()
        if self.auth_token:
            return base + "?authToken=****"
        return base

    def __str__(self) -> str:
        return self.to_display_string()

    def build_url(self, path: str = "") -> str:
        """
        Joins the base URL with a request path.

        Anything after the first "?" in `path` is kept verbatim as the query
        string, it is neither re-escaped nor merged. A leading "/" on `path`
        is not duplicated. An empty path yields the bare base URL and "/"
        yields the base URL with a trailing slash.

        Args:
            - path (str): Request path such as "/query" or "search?q=a b".

        Returns:
            - The absolute URL as a string (without the auth token).
        """
        base = self.base_url()
        path, _, query = path.partition("?")

        url = base
        if path:
            url = f"{base}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{query}"
        return url
