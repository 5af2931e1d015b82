"""
Cashbox — Logging Setup

Helpers for host applications that want Cashbox's log output configured.
Cashbox modules only log through ``logging.getLogger(__name__)``; nothing here
runs unless the host calls configure_logging().
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from ..config import get_config
from ..errors import extract_error_code

# LogRecord attributes that are not user-supplied ``extra`` fields
_RESERVED_ATTRS = frozenset(
    {
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "name",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # Add any extra fields from record.__dict__
        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            if record.exc_info[1] is not None:
                log_data["error_code"] = extract_error_code(record.exc_info[1]).value

        return json.dumps(log_data, default=str)


def configure_logging(level: str | int | None = None, json_format: bool | None = None) -> logging.Logger:
    """
    Attach a single stream handler to the ``cashbox`` logger.

    Calling it again replaces the handler instead of adding another.

    Args:
        level: Log level name or number (default: LOG_LEVEL from config)
        json_format: Use JSONFormatter instead of a plain text format
            (default: LOG_JSON from config)

    Returns:
        The configured ``cashbox`` logger
    """
    if level is None or json_format is None:
        config = get_config()
        level = config.log_level if level is None else level
        json_format = config.log_json if json_format is None else json_format

    logger = logging.getLogger("cashbox")

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler()
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    return logger
