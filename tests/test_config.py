"""Tests for configuration helpers and the CLI."""

import json
from unittest.mock import patch

from conftest import make_response, results
from nsqlite import main as cli
from nsqlite.config import (
    DEFAULT_POOL_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_URL,
    get_client_config_from_env,
    mask_sensitive_data,
)


class TestConfig:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("NSQLITE_URL", "NSQLITE_TIMEOUT", "NSQLITE_POOL_SIZE", "NSQLITE_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = get_client_config_from_env()

        assert config["connection_string"] == DEFAULT_URL
        assert config["timeout"] == DEFAULT_TIMEOUT
        assert config["pool_size"] == DEFAULT_POOL_SIZE
        assert config["log_level"] == "INFO"

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("NSQLITE_URL", "https://db:1234")
        monkeypatch.setenv("NSQLITE_TIMEOUT", "2.5")
        monkeypatch.setenv("NSQLITE_POOL_SIZE", "8")

        config = get_client_config_from_env()

        assert config["connection_string"] == "https://db:1234"
        assert config["timeout"] == 2.5
        assert config["pool_size"] == 8

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("NSQLITE_TIMEOUT", "soon")
        monkeypatch.setenv("NSQLITE_POOL_SIZE", "-3")

        config = get_client_config_from_env()

        assert config["timeout"] == DEFAULT_TIMEOUT
        assert config["pool_size"] == DEFAULT_POOL_SIZE

    def test_mask_sensitive_data(self):
        data = {"auth_token": "secret", "url": "http://h", "password": ""}

        masked = mask_sensitive_data(data)

        assert masked == {"auth_token": "***REDACTED***", "url": "http://h", "password": ""}
        assert data["auth_token"] == "secret"


class TestCli:
    """Tests for the command-line entry point."""

    def _run(self, argv, responses):
        with patch("nsqlite.wire.client.requests.Session") as session_cls, patch.object(cli, "setup_logging"):
            session_cls.return_value.request.side_effect = responses
            return cli.main(["--url", "http://h"] + argv)

    def test_ping(self, capsys):
        assert self._run(["ping"], [make_response(text="OK")]) == 0
        assert capsys.readouterr().out.strip() == "ok"

    def test_query(self, capsys):
        code = self._run(
            ["query", "SELECT id FROM t WHERE id = ?", "-p", "1"],
            [results({"type": "read", "columns": ["id"], "types": ["integer"], "values": [[1]]})],
        )

        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"columns": ["id"], "rows": [[1]]}

    def test_failure_exit_code(self):
        assert self._run(["version"], [make_response(status=401, text="")]) == 1
