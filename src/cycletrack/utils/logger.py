"""
Centralized logging configuration for cycletrack.

This module provides:
- Structured logging setup
- Log level configuration via environment variable
- Formatters for different environments
- Helpers for logging errors, reminder events and database operations
"""

import os
import sys
import logging
import json
from typing import Optional
from datetime import datetime, timezone
import traceback

# Extra record attributes copied into structured output
STRUCTURED_FIELDS = (
    'subject_id',
    'reminder_id',
    'category',
    'event_type',
    'status',
    'error_type',
    'error_code',
    'db_operation',
    'db_table',
)


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs logs as JSON lines for production log shipping.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
            log_data['traceback'] = traceback.format_exception(*record.exc_info)

        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Colored formatter for console output in development mode.
    """

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        result = super().format(record)

        # Reset levelname for other handlers
        record.levelname = levelname

        return result


def setup_logging(
    log_level: Optional[str] = None,
    use_structured: Optional[bool] = None,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_structured: Use structured JSON logging (auto-detected from ENV)
        log_file: Optional log file path
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    if use_structured is None:
        use_structured = os.getenv('ENV', 'development').lower() == 'production'

    if log_file is None:
        log_file = os.getenv('LOG_FILE') or None

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        print(f"Invalid log level: {log_level}, defaulting to INFO")
        numeric_level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)

    if use_structured:
        console_formatter = StructuredFormatter()
    else:
        console_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        console_formatter = ColoredFormatter(console_format)

    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        # File logs are always structured
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    configure_third_party_loggers()

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging configured: level={log_level}, "
        f"structured={use_structured}, "
        f"file={log_file or 'none'}"
    )


def configure_third_party_loggers():
    """Configure log levels for third-party libraries."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    # Interval job chatter every few minutes is noise at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_error(
    logger: logging.Logger,
    message: str,
    error: Exception,
    **extra_fields
) -> None:
    """
    Log an error with structured information.

    Args:
        logger: Logger instance
        message: Error message
        error: Exception instance
        **extra_fields: Additional fields to include in the log
    """
    logger.error(
        f"{message}: {error}",
        exc_info=error,
        extra={
            'error_type': type(error).__name__,
            **extra_fields
        }
    )


def log_reminder_event(
    logger: logging.Logger,
    event_type: str,
    subject_id: str,
    reminder_id: Optional[int] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
    **extra_fields
) -> None:
    """
    Log reminder lifecycle events (scheduled, delivered, failed, purged).

    Args:
        logger: Logger instance
        event_type: Type of event
        subject_id: Owning subject
        reminder_id: Reminder ID
        category: Reminder category
        status: Event status
        **extra_fields: Additional fields to include
    """
    logger.info(
        f"Reminder event: {event_type} subject={subject_id} reminder={reminder_id}",
        extra={
            'event_type': event_type,
            'subject_id': subject_id,
            'reminder_id': reminder_id,
            'category': category,
            'status': status,
            **extra_fields
        }
    )


def log_database_operation(
    logger: logging.Logger,
    operation: str,
    table: str,
    success: bool,
    **extra_fields
) -> None:
    """
    Log database operations.

    Args:
        logger: Logger instance
        operation: Operation type (insert, update, delete, select, replace)
        table: Table name
        success: Whether operation was successful
        **extra_fields: Additional fields
    """
    level = logging.DEBUG if success else logging.ERROR
    logger.log(
        level,
        f"Database {operation} on {table}: {'success' if success else 'failed'}",
        extra={
            'db_operation': operation,
            'db_table': table,
            **extra_fields
        }
    )
