"""Shared fixtures for the cntx test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest

from cntx.ingestion.models import FileRecord

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def make_record() -> Callable[..., FileRecord]:
    """Return a factory building records with deterministic timestamps."""

    def factory(
        path: str,
        content: str = "",
        *,
        minutes: int = 0,
        tags: list[str] | None = None,
        staged: bool = False,
    ) -> FileRecord:
        return FileRecord.from_path(
            path,
            size=len(content.encode("utf-8")),
            last_modified=BASE_TIME + timedelta(minutes=minutes),
            content=content,
            tags=tags or [],
            is_staged=staged,
        )

    return factory
