# backend/portfolio_reports/utils/logging.py
"""
Root logger setup: one stdout handler, text or JSON (LOG_FORMAT), with the
request's correlation ID stamped on every record.

Report work runs on "metrics_N" worker threads, so the thread name is part
of both formats; the correlation ID reaches those threads through
run_in_worker_context.

What goes where:
    DEBUG   - rejected trailing windows, bucket counts, consolidation steps
    INFO    - report assembled, account profiles loaded, access lines
    WARNING - an account reduced to no data, client errors
    ERROR   - unreadable master sheet or accounts file
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_reports.config import settings
from portfolio_reports.utils.context import get_correlation_id

TEXT_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(correlation_id)s | "
    "%(threadName)s | %(name)s | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"

# Kept at WARNING
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",  # CorrelationIdMiddleware writes the access line
    "asyncio",
]

# Everything a bare LogRecord carries; the rest came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"correlation_id", "message"}


class CorrelationIdFilter(logging.Filter):
    """Sets record.correlation_id (%(correlation_id)s in TEXT_FORMAT)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line:

        {"timestamp": ..., "level": "INFO", "logger": ..., "thread": "metrics_0",
         "correlation_id": ..., "message": ..., "extra": {...}}

    Values json cannot encode (Decimal, date) are written with str().
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def _level(name: str) -> int:
    levels = logging.getLevelNamesMapping()
    key = name.strip().upper()
    if key not in levels:
        raise ValueError(f"Invalid log level: '{name}'")
    return levels[key]


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Install the handler on the root logger, replacing any existing ones.

    Args:
        level: Level name, defaults to settings.log_level.
        log_format: 'text' or 'json', defaults to settings.log_format.
        suppress_noisy_loggers: Raise NOISY_LOGGERS to WARNING.

    Raises:
        ValueError: unknown level name
    """
    level_name = level or settings.log_level
    format_type = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.setLevel(_level(level_name))
    root.handlers.clear()
    root.addHandler(handler)

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level_name}, format={format_type}")
