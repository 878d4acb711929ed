"""
Structured logging for the coverage service.

Two output shapes, picked by LOG_FORMAT (falls back to the environment):
    json     one JSON object per line, for log shippers (production default)
    console  coloured single-line output (development / testing default)

Every record emitted inside a request carries request_id and project_id,
filled in by RequestContextFilter, so service-layer log lines can be
correlated with the timing line of the same request.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# LogRecord attributes promoted to top-level JSON keys when set
_CONTEXT_FIELDS = (
    "request_id",
    "project_id",
    "feature_id",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "urllib3")


class RequestContextFilter(logging.Filter):
    """Stamp request_id / project_id / feature_id onto records emitted during a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = getattr(g, "request_id", None)
        view_args = request.view_args or {}
        for key in ("project_id", "feature_id"):
            if getattr(record, key, None) is None:
                setattr(record, key, view_args.get(key))
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Coloured one-liner: ``12:00:01 INFO     app.services.x [req=ab12 p=3] message``."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        tags = []
        request_id = getattr(record, "request_id", None)
        if request_id:
            tags.append(f"req={request_id}")
        project_id = getattr(record, "project_id", None)
        if project_id is not None:
            tags.append(f"p={project_id}")
        ctx = f" [{' '.join(tags)}]" if tags else ""

        duration = getattr(record, "duration_ms", None)
        dur = f" ({duration:.0f}ms)" if duration is not None else ""

        line = f"{color}{ts} {record.levelname:<8}{self.RESET} {record.name}{ctx} {record.getMessage()}{dur}"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _pick_format(app) -> str:
    fmt = (app.config.get("LOG_FORMAT") or "").lower()
    if fmt in ("json", "console"):
        return fmt
    if app.config.get("DEBUG") or app.config.get("TESTING"):
        return "console"
    return "json"


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    Level comes from LOG_LEVEL (config, then env); DEBUG outside production,
    INFO in production. Existing root handlers are replaced so repeated
    create_app() calls in tests do not duplicate output.
    """
    fmt = _pick_format(app)
    default_level = "INFO" if fmt == "json" else "DEBUG"
    level_name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL") or default_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ConsoleFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.config.get("TESTING"):
        app.logger.info("Logging configured: level=%s format=%s", level_name, fmt)
