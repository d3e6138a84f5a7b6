"""Logging utilities for the Interview Practice core.

All loggers live under the ``interview_practice`` namespace, so
``setup_logging`` never touches handlers installed by the host application.
"""

import json
import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "interview_practice"

# Session ID of the interview (or CLI command) being served
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

_NOISY_LIBRARIES = ("asyncio", "aiohttp", "sentence_transformers", "urllib3", "filelock")

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "correlation_id", "taskName",
}


def _extra_fields(record: logging.LogRecord) -> dict:
    return {key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRIBUTES}


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the current session's correlation ID."""

    def filter(self, record):
        if not getattr(record, "correlation_id", ""):
            record.correlation_id = correlation_id.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, extra fields at the top level."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }
        log_entry.update(_extra_fields(record))
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Console format: time, level, short logger name, session, message, extras."""

    def format(self, record):
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        name = record.name
        if name.startswith(ROOT_LOGGER_NAME + "."):
            name = name[len(ROOT_LOGGER_NAME) + 1:]
        session = getattr(record, "correlation_id", "")

        line = f"{timestamp} {record.levelname:<7} {name:<22} "
        if session:
            line += f"[{session[:8]}] "
        line += record.getMessage()

        extras = _extra_fields(record)
        if extras:
            line += "  " + " ".join(f"{key}={value}" for key, value in extras.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = False,
    structured: bool = False,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> None:
    """Configure the ``interview_practice`` logger tree.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path of the rotating log file
        enable_console: Log to stderr
        enable_file: Log to ``log_file``
        structured: Emit JSON lines instead of the human-readable format
        max_file_size: Rotate the log file at this size in bytes
        backup_count: Rotated files to keep
    """
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    package_logger.propagate = False

    formatter = StructuredFormatter() if structured else HumanReadableFormatter()
    handlers = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stderr))
    if enable_file and log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        ))
    if not handlers:
        handlers.append(logging.NullHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(CorrelationIdFilter())
        package_logger.addHandler(handler)

    for library in _NOISY_LIBRARIES:
        logging.getLogger(library).setLevel(logging.WARNING)

    get_logger("startup").debug("Logging configured", extra={
        "level": level.upper(),
        "console": enable_console,
        "file": log_file if enable_file else None,
        "structured": structured,
    })


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace, e.g. ``get_logger("rag.service")``."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_correlation_id(correlation_id_value: str) -> None:
    correlation_id.set(correlation_id_value)


def get_correlation_id() -> str:
    return correlation_id.get()


def log_performance(operation: str, duration: float, details: Optional[dict] = None):
    """Log how long an operation took.

    Args:
        operation: Name of the operation, e.g. "vector_index_build"
        duration: Duration in seconds
        details: Extra fields for the record
    """
    extra = {"operation": operation, "duration_ms": round(duration * 1000, 1)}
    if details:
        extra.update(details)
    get_logger("performance").info(f"{operation} took {duration:.3f}s", extra=extra)
