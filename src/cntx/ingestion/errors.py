"""Per-entry failures recorded while enumerating a project tree."""

from __future__ import annotations


class EnumerationError(Exception):
    """Base class for recoverable enumeration failures.

    Attributes:
        path: Project-relative path of the entry that failed.
    """

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path or '.'}: {message}")
        self.path = path


class FileReadError(EnumerationError):
    """Raised when a file's content cannot be read."""


class DirectoryListError(EnumerationError):
    """Raised when a directory cannot be listed."""
