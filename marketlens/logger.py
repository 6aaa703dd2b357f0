"""
Structured logging configuration for the market dashboard.
"""
import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Any, Optional


# Marks "not passed" so an explicit None can disable the file handler
_UNSET: Any = object()

_defaults = {
    "log_level": "INFO",
    "log_file": None,
    "max_bytes": 10485760,
    "backup_count": 5,
}


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5
) -> None:
    """
    Set process-wide defaults used by every logger created afterwards.

    Components call setup_logger() with just a name, so the application
    calls this once at boot with the values from the logging config section.
    """
    _defaults.update(
        log_level=log_level,
        log_file=log_file,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
        datefmt='%H:%M:%S'
    ))
    return handler


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    return handler


def setup_logger(
    name: str = "marketlens",
    log_level: Optional[str] = None,
    log_file: Optional[str] = _UNSET,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None
) -> logging.Logger:
    """
    Return a named logger with a console handler and an optional rotating file.

    Arguments left out fall back to the configure_logging() defaults. Passing
    log_file=None explicitly keeps this logger console-only.

    Returns:
        Configured logger instance
    """
    settings = dict(_defaults)
    if log_level is not None:
        settings["log_level"] = log_level
    if log_file is not _UNSET:
        settings["log_file"] = log_file
    if max_bytes is not None:
        settings["max_bytes"] = max_bytes
    if backup_count is not None:
        settings["backup_count"] = backup_count

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings["log_level"].upper()))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    logger.addHandler(_console_handler())
    if settings["log_file"]:
        logger.addHandler(_file_handler(settings["log_file"], settings["max_bytes"], settings["backup_count"]))

    return logger
