"""Logging setup for cntx sessions."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cntx.config.models import LoggingSettings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_path: Path, settings: LoggingSettings) -> logging.Logger:
    """Attach a rotating file handler to the ``cntx`` logger.

    Repeated calls for the same file only update the level.

    Args:
        log_path: Destination of the log file.
        settings: Logging section of the project configuration.

    Returns:
        logging.Logger: The configured package logger.
    """
    logger = logging.getLogger("cntx")
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    logger.setLevel(level)

    target = str(log_path.resolve())
    for handler in logger.handlers:
        if isinstance(handler, RotatingFileHandler) and handler.baseFilename == target:
            return logger

    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        target,
        maxBytes=max(0, settings.max_size_mb) * 1024 * 1024,
        backupCount=max(0, settings.backup_count),
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    return logger


__all__ = ["configure_logging"]
