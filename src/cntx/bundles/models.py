"""Bundle definitions, manifests and listing views."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class BundleKind(str, Enum):
    """How a bundle's membership was decided."""

    MASTER = "master"
    TAG_DERIVED = "tag-derived"
    CUSTOM = "custom"


class BundleSpec(BaseModel):
    """Request describing which files a bundle should contain.

    Attributes:
        kind: Bundle kind, fixed at creation and persisted with the bundle.
        name: Display name embedded in the bundle metadata.
        patterns: Glob patterns selecting files (master and named bundles).
        paths: Explicit file list (staged bundles).
        tag: Tag whose files form the bundle (tag-derived bundles).
        description: Optional human description.
    """

    model_config = ConfigDict(frozen=True)

    kind: BundleKind
    name: str
    patterns: List[str] = Field(default_factory=list)
    paths: Optional[List[str]] = None
    tag: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def master(cls) -> "BundleSpec":
        return cls(kind=BundleKind.MASTER, name="master", patterns=["**/*"])

    @classmethod
    def from_patterns(
        cls, name: str, patterns: Sequence[str], description: Optional[str] = None
    ) -> "BundleSpec":
        return cls(
            kind=BundleKind.CUSTOM, name=name, patterns=list(patterns), description=description
        )

    @classmethod
    def from_paths(cls, paths: Sequence[str], name: str = "staged") -> "BundleSpec":
        return cls(kind=BundleKind.CUSTOM, name=name, paths=list(paths))

    @classmethod
    def from_tag(cls, tag: str) -> "BundleSpec":
        return cls(
            kind=BundleKind.TAG_DERIVED,
            name=tag,
            tag=tag,
            description=f'Files tagged with "{tag}"',
        )


class ManifestModel(BaseModel):
    """Base for manifest documents; legacy camelCase keys are accepted on read."""

    model_config = ConfigDict(populate_by_name=True)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class ManifestEntry(ManifestModel):
    path: str
    last_modified: datetime = Field(
        validation_alias=AliasChoices("last_modified", "lastModified")
    )
    tags: List[str] = Field(default_factory=list)

    _utc_last_modified = field_validator("last_modified")(_as_utc)


class BundleManifest(ManifestModel):
    """Snapshot of every file a bundle embedded, used for staleness checks."""

    id: str
    created: datetime
    file_count: int = Field(default=0, validation_alias=AliasChoices("file_count", "fileCount"))
    files: List[ManifestEntry] = Field(default_factory=list)
    type: Optional[BundleKind] = None
    name: Optional[str] = None
    derived_from_tag: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("derived_from_tag", "derivedFromTag")
    )
    description: Optional[str] = None
    patterns: List[str] = Field(default_factory=list)

    _utc_created = field_validator("created")(_as_utc)

    @property
    def paths(self) -> List[str]:
        return [entry.path for entry in self.files]


class BuiltBundle(BaseModel):
    """In-memory result of building a bundle, before it is persisted."""

    content: str
    manifest: BundleManifest


class BundleResult(BaseModel):
    """Outcome of an explicitly requested bundle operation."""

    success: bool
    bundle_id: Optional[str] = None
    manifest: Optional[BundleManifest] = None
    error: Optional[str] = None


class Bundle(BaseModel):
    """Listing view of a persisted bundle, reconstructed from its artifacts."""

    name: str
    id: str
    timestamp: datetime
    file_count: int
    tag_count: int = 0
    kind: BundleKind
    derived_from_tag: Optional[str] = None
    description: Optional[str] = None
    content_path: Path
    manifest_path: Optional[Path] = None


def slugify(value: str) -> str:
    """Return a filesystem-safe lowercase form of ``value``."""
    slug = re.sub(r"[^a-z0-9_-]+", "-", value.strip().lower()).strip("-")
    return slug or "untitled"


__all__ = [
    "BundleKind",
    "BundleSpec",
    "ManifestEntry",
    "BundleManifest",
    "BuiltBundle",
    "BundleResult",
    "Bundle",
    "slugify",
]
