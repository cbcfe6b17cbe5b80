"""
Logging Configuration Module.

Centralized logging setup for the FarmMarket API.

Features:
- Configurable log levels per module
- Simple, detailed and JSON console formats
- Redaction of sensitive fields passed through ``extra=``
"""

import logging
from typing import Any, Optional

from farmmarket.core.config import settings

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"module": "%(filename)s", "function": "%(funcName)s", "line": %(lineno)d, '
    '"message": "%(message)s"}'
)

MODULE_LOG_LEVELS = {
    # Third-party libraries (reduce noise)
    "sqlalchemy": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "passlib": "WARNING",
    "stripe": "WARNING",
    "httpx": "WARNING",
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
}

SENSITIVE_KEYS = frozenset(
    {
        "password",
        "token",
        "client_secret",
        "card",
        "address",
        "phone",
        "metadata",
        "items",
        "authorization",
        "cookie",
    }
)
REDACTED = "[REDACTED]"
MAX_VALUE_LENGTH = 200

_RESERVED_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


def redact(value: Any, key: Optional[str] = None) -> Any:
    """Return ``value`` with sensitive keys masked and long strings truncated."""
    if key is not None and key.lower() in SENSITIVE_KEYS:
        return REDACTED
    if isinstance(value, dict):
        return {k: redact(v, str(k)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    if isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
        return value[:MAX_VALUE_LENGTH] + "..."
    return value


class RedactingFilter(logging.Filter):
    """Masks sensitive ``extra`` fields before a record reaches a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in list(record.__dict__.items()):
            if key in _RESERVED_ATTRS:
                continue
            record.__dict__[key] = redact(value, key)
        if isinstance(record.args, dict):
            record.args = redact(record.args)
        return True


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Args:
        log_level: Override default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Override default format (simple, detailed, json)
    """
    level = (log_level or settings.log_level).upper()
    fmt = log_format or settings.log_format

    if fmt == "json":
        format_str = JSON_FORMAT
    elif fmt == "simple":
        format_str = SIMPLE_FORMAT
    else:
        format_str = DETAILED_FORMAT

    formatter = logging.Formatter(format_str, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RedactingFilter())
    root_logger.addHandler(console_handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info(f"Logging configured: level={level}, format={fmt}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The module name (typically __name__)

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name)
