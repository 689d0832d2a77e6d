"""Structlog configuration helpers and per-request log files."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Iterator

import structlog

LOG_LEVEL = logging.INFO
REQUEST_LOGGER_NAMESPACE = "leave_mail_bot.requests"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9@._-]")


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging() -> None:
    """Configure structlog to emit JSON-formatted logs."""

    structlog.configure(
        processors=[*_shared_processors(), structlog.processors.JSONRenderer()],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=LOG_LEVEL)


@dataclass(frozen=True)
class RequestLogKey:
    """Identifies the log file of one processed leave email."""

    year: str
    day: str
    requester: str

    @property
    def relative_path(self) -> Path:
        return Path(self.year) / f"{self.day}_{self.requester}.log"


def sanitize_email(address: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", address or "unknown")


def build_log_key(received_date_time: str | None, requester: str) -> RequestLogKey:
    """Compute the ``{year}/{date}_{email}.log`` key for a request.

    ``received_date_time`` is the Graph ISO timestamp of the leave email;
    the current UTC time is used when it is absent or malformed.
    """

    received = None
    if received_date_time:
        try:
            received = datetime.fromisoformat(received_date_time.replace("Z", "+00:00"))
        except ValueError:
            received = None
    if received is None:
        received = datetime.now(UTC)
    elif received.tzinfo is not None:
        received = received.astimezone(UTC)

    return RequestLogKey(
        year=f"{received.year:04d}",
        day=received.strftime("%Y-%m-%d"),
        requester=sanitize_email(requester),
    )


@contextmanager
def request_logger(key: RequestLogKey, logs_dir: str | Path) -> Iterator[structlog.stdlib.BoundLogger]:
    """Yield a logger writing to the console and to the request's log file."""

    path = Path(logs_dir) / key.relative_path
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))

    # Detached from the logging manager so concurrent runs never share handlers.
    stdlib_logger = logging.Logger(f"{REQUEST_LOGGER_NAMESPACE}.{key.requester}", level=LOG_LEVEL)
    stdlib_logger.parent = logging.getLogger(REQUEST_LOGGER_NAMESPACE)
    stdlib_logger.addHandler(handler)

    log = structlog.wrap_logger(
        stdlib_logger,
        processors=[*_shared_processors(), structlog.processors.JSONRenderer()],
        wrapper_class=structlog.stdlib.BoundLogger,
    )
    try:
        yield log.bind(log_file=str(key.relative_path))
    finally:
        stdlib_logger.removeHandler(handler)
        handler.close()
