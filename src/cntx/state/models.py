"""Persisted watch state models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from cntx.ingestion.models import split_path


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StateModel(BaseModel):
    """Base for state documents; legacy camelCase keys are accepted on read."""

    model_config = ConfigDict(populate_by_name=True)


class FileStateEntry(StateModel):
    """User metadata and last observed timestamp for one path."""

    name: str = ""
    directory: str = ""
    last_modified: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("last_modified", "lastModified")
    )
    is_changed: bool = Field(default=True, validation_alias=AliasChoices("is_changed", "isChanged"))
    is_staged: bool = Field(default=False, validation_alias=AliasChoices("is_staged", "isStaged"))
    master_bundle_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("master_bundle_id", "masterBundleId")
    )
    bundle_ids: List[str] = Field(
        default_factory=list, validation_alias=AliasChoices("bundle_ids", "bundleIds")
    )
    tags: List[str] = Field(default_factory=list)

    @property
    def has_metadata(self) -> bool:
        """Return whether the entry carries anything a user set."""
        return bool(self.tags or self.is_staged or self.master_bundle_id or self.bundle_ids)

    @classmethod
    def for_path(cls, path: str) -> "FileStateEntry":
        directory, name = split_path(path)
        return cls(name=name, directory=directory)


class MasterBundleRef(StateModel):
    """Pointer to the current master bundle."""

    id: str
    created: datetime
    file_count: int = Field(default=0, validation_alias=AliasChoices("file_count", "fileCount"))


class WatchState(StateModel):
    """Aggregate state document stored in ``state/file.json``."""

    last_accessed: datetime = Field(
        default_factory=_utcnow, validation_alias=AliasChoices("last_accessed", "lastAccessed")
    )
    files: Dict[str, FileStateEntry] = Field(default_factory=dict)
    master_bundle: Optional[MasterBundleRef] = Field(
        default=None, validation_alias=AliasChoices("master_bundle", "masterBundle")
    )

    def entry(self, path: str) -> FileStateEntry:
        """Return the entry for ``path``, creating it when absent."""
        current = self.files.get(path)
        if current is None:
            current = FileStateEntry.for_path(path)
            self.files[path] = current
        return current

    def tags_for(self, path: str) -> List[str]:
        current = self.files.get(path)
        return list(current.tags) if current else []


__all__ = ["FileStateEntry", "MasterBundleRef", "WatchState"]
