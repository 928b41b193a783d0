"""Logging configuration tests."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterator

import pytest

from cntx.config.models import LoggingSettings
from cntx.logs import configure_logging


@pytest.fixture()
def package_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("cntx")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


def test_configure_logging_is_idempotent(tmp_path: Path, package_logger: logging.Logger) -> None:
    log_path = tmp_path / ".cntx" / "cntx.log"
    settings = LoggingSettings(level="debug", file_enabled=True, max_size_mb=1, backup_count=2)

    configure_logging(log_path, settings)
    configure_logging(log_path, settings)

    handlers = [h for h in package_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1
    assert handlers[0].maxBytes == 1024 * 1024
    assert handlers[0].backupCount == 2
    assert package_logger.level == logging.DEBUG

    logging.getLogger("cntx.state").debug("state reloaded")
    handlers[0].flush()
    assert "state reloaded" in log_path.read_text(encoding="utf-8")


def test_unknown_level_falls_back_to_warning(
    tmp_path: Path, package_logger: logging.Logger
) -> None:
    configure_logging(tmp_path / "cntx.log", LoggingSettings(level="chatty"))

    assert package_logger.level == logging.WARNING
