# portfolio_engine/utils/logging.py
"""
Logging configuration for the portfolio engine.

Provides centralized logging setup with:
- Log level from LOG_LEVEL
- Text (development) or JSON (log aggregation) output via LOG_FORMAT
- Correlation ID on every record
- Third-party HTTP and market data libraries capped at WARNING

Usage:
    from portfolio_engine.utils import setup_logging

    # In main.py, before creating the FastAPI app
    setup_logging()

Log Levels used by the engine:
    DEBUG   - Batch boundaries, cache hits, per-symbol lookups
    INFO    - Component initialisation, request summaries
    WARNING - Degraded results (stale quotes, skipped look-through, timeouts)
    ERROR   - Unexpected failures surfaced to the API layer
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_engine.config import settings
from portfolio_engine.utils.context import get_correlation_id

# timestamp | level | correlation_id | logger_name | message
DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"

NOISY_LOGGERS = [
    "yfinance",
    "peewee",
    "urllib3",
    "urllib3.connectionpool",
    "requests",
    "httpx",
    "httpcore",
    "asyncio",
]

# LogRecord attributes that are never copied into the JSON "extra" block
_STANDARD_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "correlation_id", "message", "taskName",
})


class CorrelationIdFilter(logging.Filter):
    """Adds `correlation_id` to every record passing through the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation systems.

    Output format:
    {
        "timestamp": "2024-01-15T10:30:00.123+00:00",
        "level": "WARNING",
        "logger": "portfolio_engine.services.market_data.quote_fetcher",
        "correlation_id": "abc-123-def",
        "message": "Quote batch 2/3 failed, serving cache",
        "extra": { ... }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_RECORD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)

        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry)


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure root logging once at application startup.

    Args:
        level: Log level name. Defaults to settings.log_level.
        log_format: 'text' or 'json'. Defaults to settings.log_format.
        suppress_noisy_loggers: Cap third-party loggers at WARNING.

    Example:
        setup_logging(level="DEBUG", log_format="text")
    """
    log_level_str = level or settings.log_level
    log_level = _get_log_level(log_level_str)
    format_type = (log_format or settings.log_format).lower()

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            fmt=DEFAULT_TEXT_FORMAT,
            datefmt=DEFAULT_DATE_FORMAT,
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={log_level_str}, format={format_type}",
        extra={"config": {"level": log_level_str, "format": format_type}},
    )


def _get_log_level(level_str: str) -> int:
    """
    Convert a level name to its logging constant.

    Raises:
        ValueError: If level_str is not a valid log level
    """
    level_str = level_str.upper().strip()

    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    if level_str not in level_mapping:
        valid_levels = ", ".join(level_mapping.keys())
        raise ValueError(
            f"Invalid log level: '{level_str}'. "
            f"Valid levels are: {valid_levels}"
        )

    return level_mapping[level_str]


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger; correlation IDs come from the handler filter."""
    return logging.getLogger(name)
