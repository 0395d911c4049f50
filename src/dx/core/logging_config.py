"""Centralized logging configuration for dx.

dx is an interactive tool, so the default output is terse and only shows
warnings and errors (overwritten module names, unreadable module map,
failed saves). Raise the level to see resolution and loading details.

Usage:
    from dx.core.logging_config import configure_logging

    # Configure once at CLI startup
    configure_logging(level="DEBUG")

    # Get loggers in modules
    logger = logging.getLogger(__name__)

Environment Variables:
    DX_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    DX_LOG_FORMAT: Output format ("text" or "json")
    DX_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

# Terse format for the terminal, detailed format for log files
CONSOLE_FORMAT = "dx: %(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_LEVEL = "WARNING"

# Track if logging has been configured
_configured = False

_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys() | {"message", "taskName"}
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs one JSON object per record:
    {
        "timestamp": "2026-10-19T14:30:00.123456",
        "level": "WARNING",
        "logger": "dx.core.modules.module_map",
        "message": "Module name \"json\" already exists in the map. Overwriting.",
        "extra": {...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Anything passed via extra={...}
        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    force: bool = False,
) -> None:
    """Configure logging for the dx process.

    Called once by the CLI. Subsequent calls are ignored unless force=True.

    Args:
        level: Log level. Defaults to DX_LOG_LEVEL or "WARNING".
        format: "text" or "json". Defaults to DX_LOG_FORMAT or "text".
        file_path: Optional log file. Defaults to DX_LOG_FILE.
        force: Reconfigure even if already configured.
    """
    global _configured
    if _configured and not force:
        return

    level = level or os.environ.get("DX_LOG_LEVEL", DEFAULT_LEVEL)
    format = format or os.environ.get("DX_LOG_FORMAT", "text")  # type: ignore
    file_path = file_path or os.environ.get("DX_LOG_FILE")

    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    if format == "json":
        console_handler.setFormatter(JsonFormatter())
    else:
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        if format == "json":
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    _configured = True
