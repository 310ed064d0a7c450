# nsqlite/main.py
"""
Command-line interface for talking to an NSQLite server.

Provides commands to check server health, print its version and stats, and
run a single SQL statement.
"""

import argparse
import dataclasses
import json
import sys

import structlog

from nsqlite.config import get_client_config_from_env, setup_logging
from nsqlite.database.connector import Connector
from nsqlite.errors import Error

log = structlog.get_logger(__name__)


def build_parser(defaults: dict) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nsqlite",
        description="NSQLite HTTP client.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument(
        "--url",
        default=defaults["connection_string"],
        help="Connection string, e.g. https://host:9876?authToken=TOKEN (env: NSQLITE_URL).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=defaults["timeout"],
        help="Request timeout in seconds (env: NSQLITE_TIMEOUT).",
    )
    parser.add_argument(
        "--log-level",
        default=defaults["log_level"],
        help="Log level (env: NSQLITE_LOG_LEVEL).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Available commands")

    subparsers.add_parser("ping", help="Check that the server is healthy.")
    subparsers.add_parser("version", help="Print the server version.")
    subparsers.add_parser("stats", help="Print server statistics as JSON.")

    parser_query = subparsers.add_parser("query", help="Run one SQL statement and print the result as JSON.")
    parser_query.add_argument("sql", help="The SQL statement.")
    parser_query.add_argument(
        "-p",
        "--param",
        action="append",
        default=[],
        help="Positional parameter; may be repeated. Values are parsed as JSON when possible.",
    )
    return parser


def _parse_param(raw: str):
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def run_query(connector: Connector, sql: str, params: list) -> dict:
    """Runs one statement through a cursor and returns a JSON-friendly result."""
    with connector.connect() as conn:
        cur = conn.cursor()
        cur.execute(sql, [_parse_param(p) for p in params])
        if cur.description is not None:
            return {
                "columns": [col[0] for col in cur.description],
                "rows": [list(row) for row in cur.fetchall()],
            }
        return {"rowsAffected": cur.rowcount, "lastInsertId": cur.lastrowid}


def main(argv=None) -> int:
    """Parses command-line arguments and executes the requested action."""
    defaults = get_client_config_from_env()
    args = build_parser(defaults).parse_args(argv)
    setup_logging(args.log_level)

    try:
        with Connector(args.url, timeout=args.timeout, pool_size=defaults["pool_size"]) as connector:
            client = connector.client
            if args.command == "ping":
                client.ping()
                print("ok")
            elif args.command == "version":
                print(client.get_version())
            elif args.command == "stats":
                stats = client.get_stats()
                print(json.dumps(dataclasses.asdict(stats), indent=2))
            elif args.command == "query":
                print(json.dumps(run_query(connector, args.sql, args.param), indent=2, default=str))
    except Error as e:
        log.error("Command failed.", command=args.command, error_type=type(e).__name__, error=str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
