"""
Structured JSON logging with run ID propagation.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from .context import get_organization_id, get_run_id

_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    {"timestamp": "2024-01-15T10:30:00.000Z", "level": "INFO",
     "logger": "orgpulse.scheduler.processor", "message": "Detection complete",
     "run_id": "run-ab12...", "organization_id": "org-1", ...extra}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        run_id = get_run_id()
        if run_id:
            log_obj["run_id"] = run_id
        org_id = get_organization_id()
        if org_id:
            log_obj["organization_id"] = org_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                log_obj[key] = value

        return json.dumps(log_obj, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for terminals."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        run_id = get_run_id()
        rid_str = f"[{run_id[:12]}] " if run_id else ""
        line = f"{timestamp} [{record.levelname}] {record.name}: {rid_str}{record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: str = "INFO", json_format: bool | None = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON lines. None = JSON unless stderr is a TTY.
    """
    if json_format is None:
        json_format = not sys.stderr.isatty()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else HumanFormatter())
    root_logger.addHandler(handler)
