"""Structured logging configuration for s3console.

Every console request runs for one user against one request id. Both are
kept in context variables while the request is handled, and a logging
filter copies them onto each record. Handler, auth and store log lines can
then be correlated with the access log line without passing the ids around.
"""

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone

_request_id: ContextVar[str | None] = ContextVar("s3console_request_id", default=None)
_user_id: ContextVar[str | None] = ContextVar("s3console_user_id", default=None)

# Record attributes copied into JSON log lines when present
_EXTRA_FIELDS = ("method", "path", "status", "duration_ms", "request_id", "user_id", "operation")

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s %(user_id)s]: %(message)s"


def bind_request(request_id: str) -> Token:
    """Set the request id for log records emitted by the current request.

    Returns the token to pass to ``unbind_request`` when the request ends.
    """
    _user_id.set(None)
    return _request_id.set(request_id)


def unbind_request(token: Token) -> None:
    _request_id.reset(token)
    _user_id.set(None)


def bind_user(user_id: str) -> None:
    """Attach the resolved user id to the current request's log records."""
    _user_id.set(user_id)


class RequestContextFilter(logging.Filter):
    """Adds ``request_id`` and ``user_id`` to every record.

    Values passed explicitly via ``extra`` take precedence. Outside a
    request both are ``"-"`` in text output and omitted from JSON output.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = _request_id.get()
        if getattr(record, "user_id", None) is None:
            record.user_id = _user_id.get()
        return True


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        saved = record.request_id, record.user_id
        record.request_id = record.request_id or "-"
        record.user_id = record.user_id or "-"
        try:
            return super().format(record)
        finally:
            record.request_id, record.user_id = saved


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects.

    Fields: timestamp, level, logger, message, plus any extras.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                entry[key] = val
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Install one stderr handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: 'text' for human-readable lines, 'json' for one object per line.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if fmt == "json" else _TextFormatter(_TEXT_FORMAT))

    root.addHandler(handler)

    # SDK loggers stay at WARNING or above
    logging.getLogger("botocore").setLevel(max(numeric_level, logging.WARNING))
    logging.getLogger("aiobotocore").setLevel(max(numeric_level, logging.WARNING))
