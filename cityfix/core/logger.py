"""
Centralized logging configuration for the CityFix services.

Provides a unified logging interface with:
- Structured logging with correlation IDs
- JSON output for production, colored console output for development
- Error metadata normalisation
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from cityfix.core.config import config
from cityfix.core.context import get_correlation_id

LOG_LEVEL = config.log_level.upper()
LOG_FORMAT = config.log_format
LOG_FILE_PATH = f"logs/{config.service_role}.log"

# LogRecord attributes that must never be overwritten through `extra`
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
    'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}


class StructuredLogger:
    """
    Logger with structured entries, correlation IDs and per-service context.
    """

    def __init__(self):
        self.service_name = config.service_role
        self.environment = config.environment
        self._setup_logging()

    def _setup_logging(self):
        """Configure Python logging with handlers"""
        root = logging.getLogger()
        root.handlers.clear()
        root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        if config.log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            if LOG_FORMAT == "json":
                console_handler.setFormatter(JSONFormatter())
            else:
                console_handler.setFormatter(ConsoleFormatter())
            root.addHandler(console_handler)

        if config.log_to_file:
            os.makedirs(os.path.dirname(LOG_FILE_PATH), exist_ok=True)
            file_handler = logging.FileHandler(LOG_FILE_PATH)
            file_handler.setFormatter(JSONFormatter())  # Always JSON for files
            root.addHandler(file_handler)

    def _build_log_entry(
        self,
        level: str,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[Union[int, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Build structured log entry"""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "service": self.service_name,
            "environment": self.environment,
            "message": message,
            "correlationId": correlation_id or get_correlation_id(),
        }

        if user_id is not None:
            entry["userId"] = user_id

        if metadata:
            entry["metadata"] = metadata

        return entry

    def _log(
        self,
        level: str,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[Union[int, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        log_entry = self._build_log_entry(level, message, correlation_id, user_id, metadata)
        log_method = getattr(logging.getLogger(self.service_name), level.lower())

        if LOG_FORMAT == "json":
            log_method(json.dumps(log_entry, default=str))
        else:
            extra_data = {k: v for k, v in log_entry.items() if k not in _RESERVED_ATTRS}
            log_method(message, extra=extra_data)

    @staticmethod
    def _with_error(
        metadata: Optional[Dict[str, Any]],
        error: Optional[Union[str, Exception]],
    ) -> Optional[Dict[str, Any]]:
        if not error:
            return metadata
        metadata = dict(metadata or {})
        if isinstance(error, Exception):
            metadata["error"] = {"type": type(error).__name__, "message": str(error)}
        else:
            metadata["error"] = {"message": str(error)}
        return metadata

    def debug(self, message: str, correlation_id: Optional[str] = None,
              user_id: Optional[Union[int, str]] = None,
              metadata: Optional[Dict[str, Any]] = None):
        self._log("DEBUG", message, correlation_id, user_id, metadata)

    def info(self, message: str, correlation_id: Optional[str] = None,
             user_id: Optional[Union[int, str]] = None,
             metadata: Optional[Dict[str, Any]] = None):
        self._log("INFO", message, correlation_id, user_id, metadata)

    def warning(self, message: str, correlation_id: Optional[str] = None,
                user_id: Optional[Union[int, str]] = None,
                metadata: Optional[Dict[str, Any]] = None):
        self._log("WARNING", message, correlation_id, user_id, metadata)

    def error(
        self,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[Union[int, str]] = None,
        error: Optional[Union[str, Exception]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Error level logging, normalising `error` into metadata"""
        self._log("ERROR", message, correlation_id, user_id, self._with_error(metadata, error))

    def critical(
        self,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[Union[int, str]] = None,
        error: Optional[Union[str, Exception]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self._log("CRITICAL", message, correlation_id, user_id, self._with_error(metadata, error))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": config.service_role,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        correlation_id = getattr(record, "correlationId", None)
        suffix = f" [{correlation_id}]" if correlation_id else ""

        return f"{color}[{timestamp}] {record.levelname}{reset} - {record.getMessage()}{suffix}"


# Create and export the logger instance
logger = StructuredLogger()
