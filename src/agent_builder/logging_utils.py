# logging_utils.py
"""Logging setup for the voice agent builder.

Production output is one JSON object per line; development output is a
colored single-line format. Both carry the ``extra={...}`` fields passed to
the log call.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAMESPACE = "agent_builder"
SERVICE_NAME = "agent-builder"

# Loggers that are only useful at DEBUG
QUIET_LOGGERS = (
    "urllib3",
    "requests",
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "uvicorn.access",
)

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def extract_extra(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the ``extra`` fields of a record, stringifying non-JSON values."""
    fields: Dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for log aggregation."""

    def __init__(self, service_name: str = SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        extra = extract_extra(record)
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line formatter for local development."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(datefmt="%H:%M:%S")
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self.use_colors:
            level = f"{self.LEVEL_COLORS.get(record.levelno, '')}{level}{self.RESET}"

        line = f"{self.formatTime(record, self.datefmt)} {level} {record.name}: {record.getMessage()}"

        extra = extract_extra(record)
        if extra:
            line += " | " + ", ".join(f"{key}={value}" for key, value in extra.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Optional[str] = None,
    structured: Optional[bool] = None,
) -> logging.Logger:
    """Configure the root logger once at process start.

    Args:
        level: Level name; defaults to ``config.LOG_LEVEL``.
        structured: JSON output; defaults to True outside development.

    Returns:
        The ``agent_builder`` package logger.
    """
    from .config import config

    if level:
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO
    else:
        log_level = config.get_log_level()
    level_name = logging.getLevelName(log_level)
    if structured is None:
        structured = not config.is_development()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if structured else HumanReadableFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logger = logging.getLogger(LOGGER_NAMESPACE)
    logger.debug("Logging configured", extra={"log_level": level_name, "structured": structured})
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``agent_builder`` namespace."""
    if not name.startswith(LOGGER_NAMESPACE):
        name = f"{LOGGER_NAMESPACE}.{name}"
    return logging.getLogger(name)
