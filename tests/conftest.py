"""Pytest configuration and fixtures."""

import json
import sys
from typing import Any
from unittest.mock import Mock

import pytest
import structlog

from nsqlite.database.connection import Connection
from nsqlite.wire.client import Client


def make_response(status: int = 200, body: Any = None, text: str | None = None, headers: dict | None = None) -> Mock:
    """Builds a fake `requests.Response`."""
    response = Mock()
    response.status_code = status
    response.reason = {200: "OK", 401: "Unauthorized", 500: "Internal Server Error"}.get(status, "")
    response.text = text if text is not None else json.dumps(body)
    response.content = response.text.encode("utf-8")
    response.headers = headers or {}
    return response


def results(*items: dict) -> Mock:
    """Fake `/query` response wrapping the given results in an envelope."""
    return make_response(body={"results": list(items)})


def sent_queries(session: Mock, call_index: int = -1) -> list:
    """Decodes the JSON body of a request sent through the fake session."""
    call = session.request.call_args_list[call_index]
    return json.loads(call.kwargs["data"])


@pytest.fixture(autouse=True)
def _structlog_to_stderr():
    """Keeps default (unconfigured) structlog output off stdout so CLI output stays parseable."""
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(sys.stderr))
    yield
    structlog.reset_defaults()


@pytest.fixture
def mock_session():
    """Mock HTTP session; tests set `request.return_value` or `side_effect`."""
    session = Mock()
    session.request.return_value = make_response(text="OK")
    return session


@pytest.fixture
def client(mock_session):
    """Client with injected mock session and an auth token."""
    return Client("http://db.example.com:8080?authToken=secret", session=mock_session)


@pytest.fixture
def conn(client):
    return Connection(client)
