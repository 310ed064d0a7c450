# nsqlite/config.py
"""
Centralized configuration, package-wide defaults, and logging setup.

This module is the single source of truth for tunable parameters so that
"magic numbers" like the default timeout do not leak into the rest of the
code. It also knows how to configure structlog for the command-line tool and
how to mask secrets before they reach a log line.
"""

import logging
import os
import sys
from typing import Any, Dict

import structlog

# --- Defaults ---

DEFAULT_URL = "http://localhost:9876"
DEFAULT_TIMEOUT = 30.0  # Seconds for a single HTTP round trip.
DEFAULT_POOL_SIZE = 100  # Keep-alive connections per host, like the Go client.
DEFAULT_LOG_LEVEL = "INFO"

# --- Environment variable names ---

ENV_URL = "NSQLITE_URL"
ENV_TIMEOUT = "NSQLITE_TIMEOUT"
ENV_POOL_SIZE = "NSQLITE_POOL_SIZE"
ENV_LOG_LEVEL = "NSQLITE_LOG_LEVEL"


# --- Logging Setup ---


def setup_logging(level: str = DEFAULT_LOG_LEVEL):
    """
    Configures structlog for context-aware, structured logging.

    Library code only ever calls `structlog.get_logger`; applications (and
    the bundled CLI) call this function once at startup.

    Workflow:
    1.  Sets up Python's standard logging module as the base, writing to stderr
        so that command output on stdout stays machine readable.
    2.  Configures structlog to wrap this base logger.
    3.  Defines the processor chain: context vars, logger name, level,
        ISO timestamp, exception formatting and a console renderer.

    Args:
        - level (str): Minimum level name, e.g. "DEBUG" or "WARNING".
    """
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            # For production this could be swapped with `structlog.processors.JSONRenderer()`.
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# --- Client Configuration ---


def _env_number(name: str, default, cast):
    log = structlog.get_logger("nsqlite.config")
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        log.warning("Ignoring invalid numeric setting", variable=name, value=raw, default=default)
        return default
    if value <= 0:
        log.warning("Ignoring non-positive setting", variable=name, value=raw, default=default)
        return default
    return value


def get_client_config_from_env() -> Dict[str, Any]:
    """
    Loads client configuration from environment variables.

    Expected Input:
    - Environment variables (all optional):
        - NSQLITE_URL: Connection string, e.g. "https://db.example.com?authToken=xyz".
        - NSQLITE_TIMEOUT: Request timeout in seconds.
        - NSQLITE_POOL_SIZE: HTTP keep-alive pool size.
        - NSQLITE_LOG_LEVEL: Log level for the CLI.

    Returns:
        - A dictionary with the keys 'connection_string', 'timeout',
          'pool_size' and 'log_level'. Missing or invalid values fall back
          to the package defaults.
    """
    return {
        "connection_string": os.getenv(ENV_URL) or DEFAULT_URL,
        "timeout": _env_number(ENV_TIMEOUT, DEFAULT_TIMEOUT, float),
        "pool_size": _env_number(ENV_POOL_SIZE, DEFAULT_POOL_SIZE, int),
        "log_level": os.getenv(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL,
    }


def mask_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Creates a copy of a dictionary and masks sensitive values for safe logging.

    Workflow:
    1.  Creates a shallow copy of the input dictionary to avoid side effects.
    2.  Replaces every non-empty string value whose key mentions a token,
        password or authorization with '***REDACTED***'.

    Args:
        - data (Dict[str, Any]): The dictionary to process.

    Returns:
        - A new dictionary with sensitive values redacted.
    """
    sensitive_keys = ["token", "password", "authorization", "secret"]
    safe_data = data.copy()
    for key, value in safe_data.items():
        if any(sens_key in key.lower() for sens_key in sensitive_keys):
            if isinstance(value, str) and value:
                safe_data[key] = "***REDACTED***"
    return safe_data
