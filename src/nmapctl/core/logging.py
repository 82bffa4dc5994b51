"""
nmapctl Logging Configuration

Console and optional rotating file logging for the library and CLI. Console
output goes to stderr because stdout carries scan reports.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config import LoggingConfig, get_config


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that receive the nmapctl handlers
MANAGED_LOGGERS = ("nmapctl", "asyncio")


class StructuredFormatter(logging.Formatter):
    """Appends a record's ``structured_data`` to the formatted line."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        data = getattr(record, "structured_data", None)
        if data:
            return f"{line} | Data: {data}"
        return line


def _handlers(
    level: str, log_file: Optional[Path], settings: LoggingConfig, structured: bool
) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": "structured" if structured else "standard",
            "stream": sys.stderr,
        }
    }
    if log_file is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "structured_file" if structured else "file",
            "filename": str(log_file),
            "maxBytes": settings.max_file_size,
            "backupCount": settings.backup_count,
            "encoding": "utf-8",
        }
    return handlers


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    enable_structured: bool = True,
) -> None:
    """
    Configure logging for nmapctl.

    Args:
        log_level: Level for nmapctl loggers, defaults to the configured level
        log_file: Rotating log file, defaults to the configured file path
        enable_structured: Render ``log_structured`` data after each message
    """
    settings = get_config().logging
    level = (log_level or settings.level).upper()

    if log_file is None and settings.file_path:
        log_file = Path(settings.file_path)
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers = _handlers(level, log_file, settings, enable_structured)
    handler_names = list(handlers)

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
                "file": {"format": FILE_LOG_FORMAT, "datefmt": DATE_FORMAT},
                "structured": {
                    "()": StructuredFormatter,
                    "format": LOG_FORMAT,
                    "datefmt": DATE_FORMAT,
                },
                "structured_file": {
                    "()": StructuredFormatter,
                    "format": FILE_LOG_FORMAT,
                    "datefmt": DATE_FORMAT,
                },
            },
            "handlers": handlers,
            "loggers": {
                name: {
                    "level": level if name == "nmapctl" else "WARNING",
                    "handlers": handler_names,
                    "propagate": False,
                }
                for name in MANAGED_LOGGERS
            },
            "root": {"level": "WARNING", "handlers": handler_names},
        }
    )


def log_structured(
    logger: logging.Logger, level: int, message: str, **structured_data: Any
) -> None:
    """Log ``message`` with keyword data attached as ``structured_data``."""
    if logger.isEnabledFor(level):
        logger.log(level, message, extra={"structured_data": structured_data})
