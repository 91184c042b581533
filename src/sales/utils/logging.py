"""Logging for the sales service.

The API runs under uvicorn and the sweeps run from cron, so everything goes
to stdout and the process supervisor keeps the files. structlog renders JSON
lines in production and staging and a console view everywhere else.
"""

import logging
import os
import sys
from uuid import uuid4

import structlog

_LEVEL_BY_ENV = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Loggers that are noisy below WARNING
_QUIET_LOGGERS = ("protean", "httpx", "httpcore", "stripe")


def current_environment() -> str:
    """ENV, then ENVIRONMENT, then PROTEAN_ENV; development when none is set."""
    return (os.getenv("ENV") or os.getenv("ENVIRONMENT") or os.getenv("PROTEAN_ENV") or "development").lower()


def log_level(environment: str | None = None) -> str:
    environment = environment or current_environment()
    return os.getenv("LOG_LEVEL", _LEVEL_BY_ENV.get(environment, "INFO")).upper()


def configure_logging() -> None:
    environment = current_environment()
    level = log_level(environment)

    handler = logging.StreamHandler(sys.stdout)
    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if environment in ("production", "staging"):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(method: str, path: str, request_id: str | None = None) -> str:
    """Tag every log line of the current request. Returns the request id."""
    request_id = request_id or uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
