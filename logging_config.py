#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging configuration for Playlist Purge.

Provides structured JSON logging and setup functions. Credentials pasted by the
user travel through most of the code, so the formatter masks any structured
field whose name marks it as a credential.
"""

import logging
import logging.handlers
import json
import sys
from typing import Dict, Any, Optional

# Structured fields whose values must never reach a log sink
SENSITIVE_FIELDS = frozenset({
    "authorization", "cookie", "x-youtube-proxy-cookie", "x-goog-visitor-id", "headers",
})
MASK = "***"


def mask_sensitive(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``data`` with credential-bearing values masked."""
    return {
        key: (MASK if str(key).lower() in SENSITIVE_FIELDS else value)
        for key, value in data.items()
    }


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Converts log records into JSON objects with standardized fields.
    """

    def format(self, record):
        """Format the log record as a JSON object."""
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "file": record.filename,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        # Add any custom fields attached to the record
        extra_data = getattr(record, "data", None)
        if isinstance(extra_data, dict):
            log_data.update(mask_sensitive(extra_data))

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Logger that supports structured logging with additional context data."""

    def __init__(self, name: str, extra: Optional[Dict[str, Any]] = None):
        """Initialize the structured logger."""
        self.logger = logging.getLogger(name)
        self.extra = extra or {}

    def bind(self, **kwargs) -> "StructuredLogger":
        """Return a logger that adds ``kwargs`` to every record."""
        return StructuredLogger(self.logger.name, {**self.extra, **kwargs})

    def _log(self, level: int, message: str, exc_info=None, **kwargs):
        """Internal method to handle logging with extra data."""
        extra_data = {**self.extra}
        if kwargs:
            extra_data.update(kwargs)
        self.logger.log(level, message, exc_info=exc_info, extra={"data": mask_sensitive(extra_data)})

    def debug(self, message: str, **kwargs):
        """Log a debug message with structured data."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log an info message with structured data."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log a warning message with structured data."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info=True, **kwargs):
        """Log an error message with structured data."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, exc_info=True, **kwargs):
        """Log a critical message with structured data."""
        self._log(logging.CRITICAL, message, exc_info=exc_info, **kwargs)


def setup_logging(log_level_console=logging.INFO, log_level_file=logging.DEBUG, structured=True,
                  log_file="playlist_purge.log"):
    """Configure logging to console and a rotating file."""
    root_logger = logging.getLogger()

    # Remove any existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if structured else logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level_file)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not create log file '{log_file}': {e}", file=sys.stderr)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level_console)
    root_logger.addHandler(console_handler)

    root_logger.setLevel(min(log_level_console, log_level_file))

    # googleapiclient logs every discovery build at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

    logging.getLogger(__name__).info("Logging setup complete.")
