"""Data models produced by file enumeration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .errors import EnumerationError


def split_path(path: str) -> tuple[str, str]:
    """Return ``(directory, name)`` for a project-relative path; top-level files use ``""``."""
    directory, _, name = path.rpartition("/")
    return directory, name


class FileRecord(BaseModel):
    """One watched file together with the user metadata merged from state."""

    path: str
    name: str
    directory: str = ""
    size: int = 0
    last_modified: datetime
    content: str = ""
    is_staged: bool = False
    is_changed: bool = True
    tags: List[str] = Field(default_factory=list)
    master_bundle_id: Optional[str] = None

    @property
    def extension(self) -> str:
        """Return the suffix after the last dot of the file name, without the dot."""
        stem, dot, suffix = self.name.rpartition(".")
        return suffix if dot and stem else ""

    @classmethod
    def from_path(cls, path: str, **values: Any) -> "FileRecord":
        directory, name = split_path(path)
        return cls(path=path, name=name, directory=directory, **values)


@dataclass(slots=True)
class EnumerationResult:
    """Records discovered under a root and the entries that failed along the way."""

    records: list[FileRecord] = field(default_factory=list)
    errors: list[EnumerationError] = field(default_factory=list)


__all__ = ["FileRecord", "EnumerationResult", "split_path"]
