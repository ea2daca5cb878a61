"""Centralized logging configuration for the service."""

import json
import logging
import sys
from datetime import datetime, timezone

from .config import settings


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def _build_formatter() -> logging.Formatter:
    if settings.LOG_FORMAT == "json":
        return JSONFormatter()
    return logging.Formatter(
        fmt='%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def setup_logger() -> logging.Logger:
    """Configure and return the service logger with console and optional file output."""
    logger = logging.getLogger("users_service")
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper()))

    # Already configured (module re-imported)
    if logger.handlers:
        return logger

    formatter = _build_formatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
        except OSError as e:
            logger.error(f"Failed to create file handler for {settings.LOG_FILE}: {e}")
        else:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


logger = setup_logger()
