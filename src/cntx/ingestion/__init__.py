"""Project tree enumeration and pattern matching."""

from .discovery import FileEnumerator
from .errors import DirectoryListError, EnumerationError, FileReadError
from .models import EnumerationResult, FileRecord, split_path
from .patterns import (
    ALWAYS_IGNORED,
    is_always_ignored,
    is_ignored,
    matches,
    matches_directory,
    normalize_path,
)

__all__ = [
    "FileEnumerator",
    "FileRecord",
    "EnumerationResult",
    "EnumerationError",
    "FileReadError",
    "DirectoryListError",
    "ALWAYS_IGNORED",
    "matches",
    "matches_directory",
    "is_ignored",
    "is_always_ignored",
    "normalize_path",
    "split_path",
]
