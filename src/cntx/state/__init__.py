"""State persistence helpers for cntx projects."""

from __future__ import annotations

import json
import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import ValidationError

from cntx.config.models import StateSettings
from cntx.paths import DEFAULT_STATE_DIRNAME, ProjectPaths
from cntx.storage import atomic_write_text

from .errors import PersistWriteError, StateCorruptError, StateError
from .models import FileStateEntry, MasterBundleRef, WatchState

LOGGER = logging.getLogger(__name__)


class StateRepository:
    """Manage the persisted watch state of one project.

    Every read-modify-write helper holds a per-repository lock, so a single
    repository instance may be shared between threads.
    """

    def __init__(self, paths: ProjectPaths, settings: StateSettings | None = None) -> None:
        """Initialize the repository.

        Args:
            paths: Layout of the project's tool directory.
            settings: Retry policy for transient read failures.
        """
        self._paths = paths
        self._settings = settings or StateSettings()
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Return the lock guarding read-modify-write cycles on the state."""
        return self._lock

    @property
    def state_path(self) -> Path:
        """Return the location of the state document."""
        return self._paths.state_file

    def load(self) -> WatchState:
        """Load the watch state, answering with a fresh default when unavailable.

        Returns:
            WatchState: Persisted state, or an empty state if the document is
            missing, unreadable after the configured retries, or corrupt.
        """
        path = self.state_path
        attempts = max(0, self._settings.load_retries) + 1
        for attempt in range(1, attempts + 1):
            try:
                raw = path.read_text(encoding="utf-8")
                break
            except FileNotFoundError:
                return WatchState()
            except OSError as exc:
                if attempt == attempts:
                    LOGGER.warning(
                        "Giving up reading %s after %d attempts: %s", path, attempts, exc
                    )
                    return WatchState()
                LOGGER.debug("State read attempt %d failed: %s", attempt, exc)
                time.sleep(self._settings.retry_delay_seconds)

        try:
            return self._parse(raw)
        except StateCorruptError as exc:
            LOGGER.error("Resetting watch state: %s", exc)
            return WatchState()

    def save(self, state: WatchState, *, merge: bool = True) -> bool:
        """Persist ``state`` atomically.

        Args:
            state: State to write; ``last_accessed`` is refreshed.
            merge: Keep on-disk entries for paths that ``state`` does not carry.

        Returns:
            bool: True when the document was written.
        """
        with self._lock:
            state.last_accessed = datetime.now(timezone.utc)
            if merge:
                for path, entry in self._load_on_disk_entries().items():
                    state.files.setdefault(path, entry)
            try:
                self._write(state)
            except OSError as exc:
                error = PersistWriteError(f"Failed to write {self.state_path}: {exc}")
                LOGGER.error("%s", error)
                self._recover()
                return False
            return True

    @contextmanager
    def transaction(self) -> Iterator[WatchState]:
        """Yield the loaded state and save it when the block exits cleanly."""
        with self._lock:
            state = self.load()
            yield state
            self.save(state)

    def toggle_staged(self, paths: Iterable[str]) -> bool:
        """Move every path to the inverse of the first path's staged flag.

        Returns:
            bool: The staged value applied to the selection.
        """
        selection = list(dict.fromkeys(paths))
        if not selection:
            return False
        with self.transaction() as state:
            first = state.files.get(selection[0])
            target = not (first.is_staged if first else False)
            for path in selection:
                state.entry(path).is_staged = target
        return target

    def add_tag_to_files(self, tag: str, paths: Iterable[str]) -> None:
        """Attach ``tag`` to each path, creating state entries as needed.

        Args:
            tag: Tag name; files already carrying it are left unchanged.
            paths: Project-relative file paths.
        """
        with self.transaction() as state:
            for path in paths:
                entry = state.entry(path)
                if tag not in entry.tags:
                    entry.tags.append(tag)

    def remove_tag_from_files(self, tag: str, paths: Iterable[str]) -> None:
        """Detach ``tag`` from each path, creating state entries as needed.

        Args:
            tag: Tag name to remove.
            paths: Project-relative file paths; unknown paths still get an entry.
        """
        with self.transaction() as state:
            for path in paths:
                entry = state.entry(path)
                if tag in entry.tags:
                    entry.tags.remove(tag)

    def prune(self, existing_paths: Iterable[str]) -> list[str]:
        """Drop entries for vanished files that carry no user metadata.

        Args:
            existing_paths: Paths currently present in the project.

        Returns:
            list[str]: Paths whose entries were removed.
        """
        existing = set(existing_paths)
        with self._lock:
            state = self.load()
            removed = [
                path
                for path, entry in state.files.items()
                if path not in existing and not entry.has_metadata
            ]
            for path in removed:
                del state.files[path]
            if removed:
                self.save(state, merge=False)
        return removed

    def _parse(self, raw: str) -> WatchState:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StateCorruptError(f"Invalid watch state data: {exc}") from exc
        try:
            return WatchState.model_validate(data)
        except ValidationError as exc:
            raise StateCorruptError(f"Invalid watch state data: {exc}") from exc

    def _load_on_disk_entries(self) -> dict[str, FileStateEntry]:
        try:
            return self._parse(self.state_path.read_text(encoding="utf-8")).files
        except (OSError, StateCorruptError):
            return {}

    def _write(self, state: WatchState) -> None:
        payload = state.model_dump(mode="json")
        atomic_write_text(self.state_path, json.dumps(payload, indent=2, sort_keys=False))

    def _recover(self) -> None:
        try:
            self._parse(self.state_path.read_text(encoding="utf-8"))
            return
        except FileNotFoundError:
            return
        except (OSError, StateCorruptError):
            pass
        try:
            self._write(WatchState())
            LOGGER.warning("Replaced unreadable watch state with a default document")
        except OSError as exc:
            LOGGER.error("Recovery write of default watch state failed: %s", exc)


__all__ = [
    "StateRepository",
    "DEFAULT_STATE_DIRNAME",
    "WatchState",
    "FileStateEntry",
    "MasterBundleRef",
    "StateError",
    "StateCorruptError",
    "PersistWriteError",
]
