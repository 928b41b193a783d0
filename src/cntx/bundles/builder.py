"""Resolve bundle membership, render bundle documents and persist them."""

from __future__ import annotations

import json
import logging
import secrets
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence

from cntx.ingestion.models import FileRecord
from cntx.ingestion.patterns import is_ignored, matches
from cntx.paths import ProjectPaths
from cntx.state import StateRepository
from cntx.state.errors import PersistWriteError
from cntx.state.models import MasterBundleRef, WatchState
from cntx.storage import atomic_write_text

from .document import render_document
from .errors import BundleError, EmptyTagBundleError
from .models import (
    BuiltBundle,
    BundleKind,
    BundleManifest,
    BundleResult,
    BundleSpec,
    ManifestEntry,
    slugify,
)

LOGGER = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase
MANIFEST_SUFFIX = "-manifest.json"
CONTENT_SUFFIX = ".txt"


def new_bundle_id(spec: BundleSpec, now: Optional[datetime] = None) -> str:
    """Return ``<prefix>-<UTC timestamp>-<5 base36 chars>`` for ``spec``."""
    if spec.kind is BundleKind.MASTER:
        prefix = "master"
    elif spec.kind is BundleKind.TAG_DERIVED:
        prefix = f"tag-{slugify(spec.tag or spec.name)}"
    else:
        prefix = "bundle"
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(5))
    return f"{prefix}-{stamp}-{suffix}"


def bundle_directory(paths: ProjectPaths, kind: BundleKind, tag: Optional[str] = None) -> Path:
    """Return the directory holding artifacts of a bundle of ``kind``."""
    if kind is BundleKind.MASTER:
        return paths.master_dir
    if kind is BundleKind.TAG_DERIVED:
        return paths.tag_bundles_dir / slugify(tag or "untagged")
    return paths.bundles_dir


def artifact_paths(directory: Path, bundle_id: str) -> tuple[Path, Path]:
    """Return the content and manifest locations for ``bundle_id``."""
    return directory / f"{bundle_id}{CONTENT_SUFFIX}", directory / f"{bundle_id}{MANIFEST_SUFFIX}"


class BundleBuilder:
    """Build bundles from enumerated records and keep the watch state in step."""

    def __init__(
        self,
        paths: ProjectPaths,
        state_repository: StateRepository,
        ignore_patterns: Sequence[str],
        project_name: str,
        *,
        include_tree: bool = True,
    ) -> None:
        """Initialize the builder.

        Args:
            paths: Project layout deciding where artifacts are written.
            state_repository: Source of truth for tags and staged flags.
            ignore_patterns: Active ignore list applied to pattern bundles.
            project_name: Label embedded in bundle headers.
            include_tree: Whether bundle headers embed the directory tree.
        """
        self._paths = paths
        self._state = state_repository
        self.ignore_patterns = list(ignore_patterns)
        self.project_name = project_name
        self.include_tree = include_tree

    def build(
        self,
        spec: BundleSpec,
        records: Sequence[FileRecord],
        state: WatchState,
    ) -> BuiltBundle:
        """Render a bundle without touching the filesystem.

        Args:
            spec: Bundle request.
            records: Live file records.
            state: Current watch state; its tags win over the records' tags.

        Returns:
            BuiltBundle: Document text and manifest.

        Raises:
            EmptyTagBundleError: If a tag bundle resolves to no files.
        """
        selected = self._resolve(spec, records, state)
        tags = {record.path: self._current_tags(record, state) for record in selected}
        created = datetime.now(timezone.utc)
        manifest = BundleManifest(
            id=new_bundle_id(spec, created),
            created=created,
            file_count=len(selected),
            files=[
                ManifestEntry(
                    path=record.path, last_modified=record.last_modified, tags=tags[record.path]
                )
                for record in selected
            ],
            type=spec.kind,
            name=spec.name,
            derived_from_tag=spec.tag,
            description=spec.description,
            patterns=list(spec.patterns),
        )
        content = render_document(
            manifest,
            selected,
            tags,
            project_name=self.project_name,
            ignore_patterns=self.ignore_patterns,
            include_tree=self.include_tree,
        )
        return BuiltBundle(content=content, manifest=manifest)

    def create(
        self,
        spec: BundleSpec,
        records: Sequence[FileRecord],
        *,
        replaces: Optional[str] = None,
    ) -> BundleResult:
        """Build and persist a bundle, then record it in the watch state.

        Args:
            spec: Bundle request.
            records: Live file records.
            replaces: Identifier of a bundle this one supersedes.

        Returns:
            BundleResult: ``success=False`` with an error message when the
            bundle is empty or any artifact cannot be written.
        """
        with self._state.lock:
            state = self._state.load()
            try:
                built = self.build(spec, records, state)
                written = self._persist(spec, built)
            except (BundleError, PersistWriteError) as exc:
                LOGGER.warning("Bundle %r not created: %s", spec.name, exc)
                return BundleResult(success=False, error=str(exc))

            if spec.kind is not BundleKind.TAG_DERIVED:
                self._record(spec, built.manifest, records, state, replaces)
                if not self._state.save(state):
                    _remove(written)
                    error = PersistWriteError(
                        f"Failed to record bundle {built.manifest.id} in state"
                    )
                    LOGGER.error("%s", error)
                    return BundleResult(success=False, error=str(error))

        manifest = built.manifest
        LOGGER.info(
            "Created %s bundle %s with %d files", spec.kind.value, manifest.id, manifest.file_count
        )
        return BundleResult(success=True, bundle_id=manifest.id, manifest=manifest)

    def regenerate(
        self,
        manifest: BundleManifest,
        records: Sequence[FileRecord],
        *,
        artifacts: Optional[Iterable[Path]] = None,
    ) -> BundleResult:
        """Replace a bundle by deleting its artifacts and creating it anew with a fresh id.

        Args:
            manifest: Manifest of the bundle being replaced.
            records: Live file records.
            artifacts: Files to delete; defaults to the locations implied by the manifest.

        Returns:
            BundleResult: Outcome of creating the replacement.
        """
        spec = spec_from_manifest(manifest)
        if artifacts is None:
            directory = bundle_directory(self._paths, spec.kind, spec.tag)
            artifacts = artifact_paths(directory, manifest.id)
        _remove(artifacts)
        return self.create(spec, records, replaces=manifest.id)

    def _resolve(
        self,
        spec: BundleSpec,
        records: Sequence[FileRecord],
        state: WatchState,
    ) -> list[FileRecord]:
        if spec.kind is BundleKind.TAG_DERIVED:
            tag = spec.tag or spec.name
            selected = [record for record in records if tag in self._current_tags(record, state)]
            if not selected:
                raise EmptyTagBundleError(tag)
            return selected

        if spec.paths is not None:
            by_path = {record.path: record for record in records}
            selected = []
            for path in dict.fromkeys(spec.paths):
                record = by_path.get(path)
                if record is None:
                    LOGGER.debug("Skipping %s: not present in the project", path)
                    continue
                selected.append(record)
            return selected

        candidates = [
            record
            for record in records
            if any(matches(record.path, pattern) for pattern in spec.patterns)
        ]
        return [
            record
            for record in candidates
            if self._has_metadata(record, state)
            or not is_ignored(record.path, self.ignore_patterns)
        ]

    def _current_tags(self, record: FileRecord, state: WatchState) -> list[str]:
        entry = state.files.get(record.path)
        return list(entry.tags) if entry is not None else list(record.tags)

    def _has_metadata(self, record: FileRecord, state: WatchState) -> bool:
        entry = state.files.get(record.path)
        if entry is not None and entry.has_metadata:
            return True
        return bool(record.tags or record.is_staged or record.master_bundle_id)

    def _persist(self, spec: BundleSpec, built: BuiltBundle) -> tuple[Path, Path]:
        directory = bundle_directory(self._paths, spec.kind, spec.tag)
        content_path, manifest_path = artifact_paths(directory, built.manifest.id)
        try:
            atomic_write_text(content_path, built.content)
        except OSError as exc:
            raise PersistWriteError(f"Failed to write {content_path.name}: {exc}") from exc
        payload = built.manifest.model_dump(mode="json", exclude_none=True)
        try:
            atomic_write_text(manifest_path, json.dumps(payload, indent=2))
        except OSError as exc:
            _remove((content_path,))
            raise PersistWriteError(f"Failed to write {manifest_path.name}: {exc}") from exc
        return content_path, manifest_path

    def _record(
        self,
        spec: BundleSpec,
        manifest: BundleManifest,
        records: Sequence[FileRecord],
        state: WatchState,
        replaces: Optional[str],
    ) -> None:
        if replaces:
            for entry in state.files.values():
                if replaces in entry.bundle_ids:
                    entry.bundle_ids.remove(replaces)

        by_path = {record.path: record for record in records}
        for path in manifest.paths:
            entry = state.entry(path)
            entry.is_staged = False
            if spec.kind is BundleKind.MASTER:
                entry.master_bundle_id = manifest.id
                entry.is_changed = False
                entry.last_modified = by_path[path].last_modified
            elif manifest.id not in entry.bundle_ids:
                entry.bundle_ids.append(manifest.id)

        if spec.kind is BundleKind.MASTER:
            state.master_bundle = MasterBundleRef(
                id=manifest.id, created=manifest.created, file_count=manifest.file_count
            )


def spec_from_manifest(manifest: BundleManifest) -> BundleSpec:
    """Return the request that reproduces the bundle described by ``manifest``."""
    kind = manifest.type or BundleKind.CUSTOM
    if kind is BundleKind.MASTER:
        return BundleSpec.master()
    if kind is BundleKind.TAG_DERIVED and manifest.derived_from_tag:
        return BundleSpec.from_tag(manifest.derived_from_tag)
    name = manifest.name or "custom"
    if manifest.patterns:
        return BundleSpec.from_patterns(name, manifest.patterns, manifest.description)
    return BundleSpec(
        kind=BundleKind.CUSTOM, name=name, paths=manifest.paths, description=manifest.description
    )


def _remove(paths: Iterable[Path]) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.warning("Could not remove %s: %s", path, exc)


__all__ = [
    "BundleBuilder",
    "new_bundle_id",
    "bundle_directory",
    "artifact_paths",
    "spec_from_manifest",
    "MANIFEST_SUFFIX",
    "CONTENT_SUFFIX",
]
