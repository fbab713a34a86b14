"""
Logging setup for the admissions API.

One stderr handler on the root logger. Every record passes through
``RequestContextFilter``, which stamps the request id and the authenticated
user id while a request is active. Services add the application-specific
context themselves through ``extra=``:

    logger.info("Section saved", extra={"application_id": 7, "section": "purpose"})

Output format comes from ``LOG_FORMAT`` (``json`` or ``text``). When unset,
production writes JSON lines and development/testing write plain text.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

# Attributes lifted from a record into the output when set
CONTEXT_KEYS = (
    "request_id",
    "user_id",
    "application_id",
    "section",
    "application_status",
    "method",
    "path",
    "status",
    "duration_ms",
)

_QUIET_LOGGERS = ("werkzeug", "urllib3", "sqlalchemy.engine", "alembic")


def record_context(record: logging.LogRecord) -> dict:
    """Context attributes present on ``record``, in ``CONTEXT_KEYS`` order."""
    out = {}
    for key in CONTEXT_KEYS:
        value = getattr(record, key, None)
        if value is not None and value != "":
            out[key] = value
    return out


class RequestContextFilter(logging.Filter):
    """Fill ``request_id`` and ``user_id`` from ``flask.g`` unless already given."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if getattr(record, "request_id", None) is None:
                record.request_id = g.get("request_id")
            if getattr(record, "user_id", None) is None:
                record.user_id = g.get("jwt_user_id")
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message key=value ...``"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = record_context(record)
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def configure_logging(app):
    """Install the stderr handler on the root logger for ``app``.

    Safe to call once per app instance; re-created apps replace the handler
    rather than adding a second one.
    """
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = str(app.config.get("LOG_LEVEL") or ("INFO" if production else "DEBUG")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    fmt = (app.config.get("LOG_FORMAT") or ("json" if production else "text")).lower()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not testing:
        app.logger.info("Logging configured level=%s format=%s", level_name, fmt)
