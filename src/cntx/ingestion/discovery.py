"""File discovery utilities."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from .errors import DirectoryListError, EnumerationError, FileReadError
from .models import EnumerationResult, FileRecord
from .patterns import is_always_ignored, is_ignored, normalize_path

LOGGER = logging.getLogger(__name__)


class FileEnumerator:
    """Walk a project tree and produce file records with eagerly read content."""

    def __init__(
        self,
        *,
        read_workers: int = 8,
        encoding: str = "utf-8",
        follow_symlinks: bool = False,
    ) -> None:
        """Initialize the enumerator.

        Args:
            read_workers: Number of threads used to read file contents.
            encoding: Encoding used to decode file contents.
            follow_symlinks: Whether to descend into symlinked directories.
        """
        self.read_workers = max(1, read_workers)
        self.encoding = encoding
        self.follow_symlinks = follow_symlinks

    def scan(
        self,
        root: Path,
        ignore_patterns: Iterable[str],
        retain: Iterable[str] = (),
    ) -> EnumerationResult:
        """Enumerate files under ``root`` that survive the ignore checks.

        Args:
            root: Project directory to walk.
            ignore_patterns: Ordered glob patterns excluding files and directories.
            retain: Relative paths kept even when a user pattern excludes them.

        Returns:
            EnumerationResult: Records in path order and the entries that failed.
        """
        root = root.expanduser().resolve()
        result = EnumerationResult()
        if not root.is_dir():
            LOGGER.warning("Project root %s is not a directory", root)
            return result

        patterns = list(ignore_patterns)
        retained = {normalize_path(path) for path in retain}
        retained_dirs = {parent for path in retained for parent in _parents(path)}

        root_stat = root.stat()
        visited = {(root_stat.st_dev, root_stat.st_ino)}
        found = list(
            self._walk(root, "", patterns, retained, retained_dirs, visited, result.errors)
        )

        with ThreadPoolExecutor(max_workers=self.read_workers) as pool:
            records = list(pool.map(lambda item: self._read(root, item, result.errors), found))

        result.records = sorted(records, key=lambda record: record.path)
        return result

    def enumerate(self, root: Path, ignore_patterns: Iterable[str]) -> list[FileRecord]:
        """Return only the records of :meth:`scan`."""
        return self.scan(root, ignore_patterns).records

    def _walk(
        self,
        root: Path,
        prefix: str,
        patterns: list[str],
        retained: set[str],
        retained_dirs: set[str],
        visited: set[tuple[int, int]],
        errors: list[EnumerationError],
    ) -> Iterator[tuple[str, os.stat_result]]:
        directory = root / prefix if prefix else root
        try:
            with os.scandir(directory) as iterator:
                entries = sorted(iterator, key=lambda entry: entry.name)
        except OSError as exc:
            error = DirectoryListError(prefix, exc.strerror or str(exc))
            LOGGER.warning("Skipping unreadable directory %s", error)
            errors.append(error)
            return

        for entry in entries:
            relative = f"{prefix}/{entry.name}" if prefix else entry.name
            if is_always_ignored(relative):
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
                is_file = not is_dir and entry.is_file()
            except OSError:
                continue

            if is_dir:
                ignored = is_ignored(relative, patterns, is_directory=True)
                if ignored and relative not in retained_dirs:
                    continue
                if self.follow_symlinks and not self._first_visit(entry, visited):
                    LOGGER.debug("Skipping already visited directory %s", relative)
                    continue
                yield from self._walk(
                    root, relative, patterns, retained, retained_dirs, visited, errors
                )
            elif is_file:
                if relative not in retained and is_ignored(relative, patterns):
                    continue
                try:
                    stat = entry.stat()
                except OSError as exc:
                    error = FileReadError(relative, exc.strerror or str(exc))
                    LOGGER.warning("Skipping file without metadata %s", error)
                    errors.append(error)
                    continue
                yield relative, stat

    def _first_visit(self, entry: os.DirEntry[str], visited: set[tuple[int, int]]) -> bool:
        try:
            stat = os.stat(entry.path)
        except OSError:
            return False
        key = (stat.st_dev, stat.st_ino)
        if key in visited:
            return False
        visited.add(key)
        return True

    def _read(
        self,
        root: Path,
        item: tuple[str, os.stat_result],
        errors: list[EnumerationError],
    ) -> FileRecord:
        relative, stat = item
        try:
            content = (root / relative).read_text(encoding=self.encoding, errors="replace")
        except OSError as exc:
            error = FileReadError(relative, exc.strerror or str(exc))
            LOGGER.warning("Recording empty content for %s", error)
            errors.append(error)
            content = ""
        return FileRecord.from_path(
            relative,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            content=content,
        )


def _parents(path: str) -> Iterator[str]:
    segments = path.split("/")[:-1]
    for index in range(1, len(segments) + 1):
        yield "/".join(segments[:index])


__all__ = ["FileEnumerator"]
