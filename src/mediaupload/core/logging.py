"""Structured logging for MediaUpload Engine.

Every log line written while a request is being served carries the upload
session's ``file_id``. Values that would let a reader forge or replay a
signed request are masked before they reach the output.
"""

import contextvars
import json
import logging
import sys
import traceback
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

file_id_context: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("file_id", default=None)

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

REDACTED = "***"
SENSITIVE_FIELDS = frozenset(
    ["secret_access_key", "service_key", "authorization", "apikey", "signature", "signing_key"]
)

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@contextmanager
def file_id_scope(file_id: Optional[str]) -> Iterator[None]:
    """Attach ``file_id`` to every log line emitted inside the block."""
    token = file_id_context.set(file_id or None)
    try:
        yield
    finally:
        file_id_context.reset(token)


def redact(key: str, value: Any) -> Any:
    return REDACTED if key.lower() in SENSITIVE_FIELDS and value else value


class CloudLoggingFormatter(logging.Formatter):
    """Render records as single-line JSON objects.

    The entry is built from the record's position, the request context,
    caller ``extra`` fields (sensitive ones masked) and, last, the exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = self._base_entry(record)

        file_id = file_id_context.get()
        if file_id:
            entry["file_id"] = file_id

        entry.update(
            (key, redact(key, value))
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
        )

        if record.exc_info:
            entry.update(self._exception_fields(record.exc_info))

        return json.dumps(entry, default=str, ensure_ascii=False)

    @staticmethod
    def _base_entry(record: logging.LogRecord) -> dict[str, Any]:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

    @staticmethod
    def _exception_fields(exc_info) -> dict[str, str]:
        exc_type, exc_value, _ = exc_info
        return {
            "exception": "".join(traceback.format_exception(*exc_info)),
            "exception_type": exc_type.__name__ if exc_type else "Unknown",
            "exception_message": str(exc_value) if exc_value else "",
        }


def resolve_level(env: str, level_name: str) -> int:
    """DEBUG for local development, otherwise ``level_name`` (INFO if unknown)."""
    if env == "local":
        return logging.DEBUG
    level = logging.getLevelName(level_name.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging() -> None:
    """Send all application and server logs to stdout.

    Local development gets plain text; every deployed environment gets
    ``CloudLoggingFormatter`` JSON.
    """
    from mediaupload.core.config import settings

    log_level = resolve_level(settings.ENV, settings.LOG_LEVEL)
    formatter = logging.Formatter(TEXT_FORMAT) if settings.ENV == "local" else CloudLoggingFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers[:] = [handler]

    for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
        server_logger = logging.getLogger(name)
        server_logger.setLevel(log_level)
        server_logger.handlers[:] = [handler]
        server_logger.propagate = False

    # httpx logs every request line at INFO, query strings included
    logging.getLogger("httpx").setLevel(logging.WARNING)
