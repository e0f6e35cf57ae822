"""
Logging configuration for the QR check-in API.

Provides structured logging with correlation IDs, contextual extras and
optional rotating file handlers for production deployments.
"""

import functools
import inspect
import logging
import logging.config
import sys
import time
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path

from qrcheckin.config import settings

# Set per request by the error handling middleware
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

EXTRA_FIELDS = (
    "operation",
    "error_code",
    "attendee_id",
    "event_id",
    "gate",
    "performance_issue",
)


class CorrelationFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record):
        if not getattr(record, "correlation_id", None):
            record.correlation_id = correlation_id_var.get()
        return True


class CustomFormatter(logging.Formatter):
    """Custom formatter with correlation ID and structured output."""

    def __init__(self, include_correlation: bool = True):
        self.include_correlation = include_correlation
        super().__init__()

    def format(self, record):
        record.timestamp = datetime.now(UTC).isoformat()

        if self.include_correlation:
            fmt = "[{timestamp}] [{levelname}] [{correlation_id}] {name}: {message}"
        else:
            fmt = "[{timestamp}] [{levelname}] {name}: {message}"

        extra_fields = []
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                # Values become part of the format string
                value = str(getattr(record, field)).replace("{", "{{").replace("}", "}}")
                extra_fields.append(f"{field}={value}")

        if extra_fields:
            fmt += f" | {' | '.join(extra_fields)}"

        formatter = logging.Formatter(fmt, style="{")
        return formatter.format(record)


def build_logging_config(log_level: str, log_dir: str | None) -> dict:
    """Build the dictConfig mapping for the given level and optional log dir."""
    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": "detailed",
            "filters": ["correlation"],
            "stream": sys.stdout,
        },
    }
    app_handlers = ["console"]

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "detailed",
            "filters": ["correlation"],
            "filename": str(directory / "app.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf-8",
        }
        handlers["error_file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "ERROR",
            "formatter": "detailed",
            "filters": ["correlation"],
            "filename": str(directory / "error.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 10,
            "encoding": "utf-8",
        }
        app_handlers += ["file", "error_file"]

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation": {
                "()": CorrelationFilter,
            },
        },
        "formatters": {
            "detailed": {
                "()": CustomFormatter,
                "include_correlation": True,
            },
        },
        "handlers": handlers,
        "loggers": {
            "qrcheckin": {
                "level": log_level,
                "handlers": app_handlers,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": app_handlers,
                "propagate": False,
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def setup_logging():
    """Configure logging for the application."""
    log_level = str(settings.get("LOG_LEVEL", "INFO")).upper()
    if log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        log_level = "INFO"

    logging.config.dictConfig(
        build_logging_config(log_level, settings.get("LOG_DIR") or None)
    )

    logger = logging.getLogger("qrcheckin")
    logger.info(
        f"Logging configured - Level: {log_level}, Environment: {settings.current_env}",
        extra={"operation": "startup"},
    )


def get_logger(name: str = None) -> logging.Logger:
    """Get a logger under the application namespace."""
    if name is None:
        name = "qrcheckin"
    elif not name.startswith("qrcheckin."):
        name = f"qrcheckin.{name}"

    return logging.getLogger(name)


class LoggerAdapter(logging.LoggerAdapter):
    """Custom logger adapter that adds context to log messages."""

    def __init__(self, logger, extra=None):
        super().__init__(logger, extra or {})

    def process(self, msg, kwargs):
        if "extra" not in kwargs:
            kwargs["extra"] = {}

        # Message extras win over adapter context
        kwargs["extra"] = {**self.extra, **kwargs["extra"]}

        return msg, kwargs

    def with_context(self, **context):
        """Create a new adapter with additional context."""
        new_extra = self.extra.copy()
        new_extra.update(context)
        return LoggerAdapter(self.logger, new_extra)


def get_contextual_logger(name: str = None, **context) -> LoggerAdapter:
    """Get a logger with additional context."""
    logger = get_logger(name)
    return LoggerAdapter(logger, context)


def log_performance(operation: str, threshold: float = 2.0):
    """Decorator to log slow coroutine calls."""

    def decorator(func):
        if not inspect.iscoroutinefunction(func):
            raise TypeError("log_performance only wraps coroutine functions")

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger = get_logger("performance")
            start_time = time.perf_counter()

            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.perf_counter() - start_time
                if duration > threshold:
                    logger.warning(
                        f"Performance issue in {operation}: {duration:.2f}s",
                        extra={
                            "operation": operation,
                            "performance_issue": True,
                        },
                    )
                else:
                    logger.debug(
                        f"Performance OK for {operation}: {duration:.3f}s",
                        extra={"operation": operation},
                    )

        return async_wrapper

    return decorator
