"""Caller-owned session tying configuration, state and bundles to one project."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from cntx.bundles import (
    Bundle,
    BundleAnalysis,
    BundleBuilder,
    BundleError,
    BundleRegistry,
    BundleResult,
    BundleSpec,
    analyze_bundle,
)
from cntx.config import CntxConfig, ConfigManager, TagDefinition
from cntx.ingestion import EnumerationError, FileEnumerator, FileRecord
from cntx.logs import configure_logging
from cntx.paths import ProjectPaths
from cntx.state import StateRepository

LOGGER = logging.getLogger(__name__)


class ProjectSession:
    """Explicit handle on a project's settings, watch state and bundles.

    A session caches the most recent enumeration; every bundle operation
    refreshes it first so bundles always reflect the files on disk.
    """

    def __init__(
        self, paths: ProjectPaths, config_manager: ConfigManager, config: CntxConfig
    ) -> None:
        self.paths = paths
        self.config_manager = config_manager
        self.config = config
        self.state = StateRepository(paths, config.state)
        self.registry = BundleRegistry(paths, self.state)
        self.enumerator = FileEnumerator(
            read_workers=config.scan.read_workers,
            encoding=config.scan.encoding,
            follow_symlinks=config.scan.follow_symlinks,
        )
        self.records: list[FileRecord] = []
        self.errors: list[EnumerationError] = []

    @classmethod
    def open(
        cls,
        root: Path,
        overrides: Optional[Mapping[str, Any]] = None,
        configure_logs: bool = False,
    ) -> "ProjectSession":
        """Initialize the tool directory under ``root`` and load its settings.

        Args:
            root: Project directory.
            overrides: Explicit settings overrides, dotted keys allowed.
            configure_logs: Attach the rotating log file when logging is enabled.

        Returns:
            ProjectSession: Ready-to-use session; no enumeration has run yet.
        """
        paths = ProjectPaths(Path(root).expanduser().resolve())
        paths.initialize()
        manager = ConfigManager(paths)
        config = manager.load(cli_overrides=overrides)
        if configure_logs and config.logging.file_enabled:
            configure_logging(paths.log_file, config.logging)
        LOGGER.debug("Opened project %s", paths.root)
        return cls(paths, manager, config)

    @property
    def project_name(self) -> str:
        return self.config.bundles.project_name or self.paths.root.name

    # Files -------------------------------------------------------------

    def refresh(self) -> list[FileRecord]:
        """Re-enumerate the project and merge persisted metadata into the records.

        Returns:
            list[FileRecord]: Records in path order.
        """
        ignore_patterns = self.config_manager.load_ignore_patterns()
        master = self.registry.latest_master_manifest()
        snapshot = {entry.path: entry.last_modified for entry in master.files} if master else {}

        with self.state.lock:
            state = self.state.load()
            retain = [path for path, entry in state.files.items() if entry.has_metadata]
            result = self.enumerator.scan(self.paths.root, ignore_patterns, retain)
            for record in result.records:
                entry = state.entry(record.path)
                recorded = snapshot.get(record.path)
                record.is_changed = recorded is None or record.last_modified > recorded
                record.is_staged = entry.is_staged
                record.tags = list(entry.tags)
                record.master_bundle_id = entry.master_bundle_id
                entry.last_modified = record.last_modified
                entry.is_changed = record.is_changed
            self.state.save(state)

        self.records = result.records
        self.errors = result.errors
        return self.records

    def staged_files(self) -> list[FileRecord]:
        """Return cached records whose staged flag is set."""
        return [record for record in self._records() if record.is_staged]

    def files_with_tag(self, tag: str) -> list[FileRecord]:
        """Return cached records carrying ``tag``."""
        return [record for record in self._records() if tag in record.tags]

    def tags_for_file(self, path: str) -> list[str]:
        return self.state.load().tags_for(path)

    def toggle_staged(self, paths: Iterable[str]) -> bool:
        """Flip the staged flag of ``paths`` together; returns the value applied."""
        staged = self.state.toggle_staged(paths)
        self._sync_records()
        return staged

    def add_tag_to_files(self, tag: str, paths: Iterable[str]) -> None:
        """Tag ``paths`` and mirror the change onto the cached records."""
        self.state.add_tag_to_files(tag, paths)
        self._sync_records()

    def remove_tag_from_files(self, tag: str, paths: Iterable[str]) -> None:
        """Untag ``paths`` and mirror the change onto the cached records."""
        self.state.remove_tag_from_files(tag, paths)
        self._sync_records()

    def prune_state(self) -> list[str]:
        """Forget vanished files that carry no user metadata."""
        return self.state.prune(record.path for record in self.refresh())

    # Tag catalog -------------------------------------------------------

    def tags(self) -> dict[str, TagDefinition]:
        return self.config_manager.load_tags()

    def define_tag(self, name: str, color: str = "#94a3b8", description: str = "") -> TagDefinition:
        """Add a tag definition; an existing definition with the same name is replaced."""
        tags = self.tags()
        tag = TagDefinition(name=name, color=color, description=description)
        tags[name] = tag
        self.config_manager.save_tags(tags)
        return tag

    def update_tag(
        self,
        name: str,
        *,
        color: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[TagDefinition]:
        """Change a tag's display hints; returns None when the tag is undefined."""
        tags = self.tags()
        current = tags.get(name)
        if current is None:
            return None
        changes = {
            key: value
            for key, value in (("color", color), ("description", description))
            if value is not None
        }
        updated = current.model_copy(update=changes)
        tags[name] = updated
        self.config_manager.save_tags(tags)
        return updated

    def delete_tag(self, name: str) -> bool:
        """Remove a tag definition; files keep the tag in their state entries."""
        tags = self.tags()
        if tags.pop(name, None) is None:
            return False
        self.config_manager.save_tags(tags)
        return True

    # Ignore patterns ---------------------------------------------------

    def ignore_patterns(self) -> list[str]:
        return self.config_manager.load_ignore_patterns()

    def add_ignore_pattern(self, pattern: str) -> bool:
        return self.config_manager.add_ignore_pattern(pattern)

    def remove_ignore_pattern(self, pattern: str) -> bool:
        return self.config_manager.remove_ignore_pattern(pattern)

    # Bundles -----------------------------------------------------------

    def create_master_bundle(self) -> BundleResult:
        return self._create(BundleSpec.master())

    def create_staged_bundle(self, name: str = "staged") -> BundleResult:
        """Bundle every staged file, then clear their staged flags."""
        records = self.refresh()
        staged = [record.path for record in records if record.is_staged]
        if not staged:
            return BundleResult(success=False, error="No files are staged")
        return self._create(BundleSpec.from_paths(staged, name=name), records)

    def create_tag_bundle(self, tag: str) -> BundleResult:
        return self._create(BundleSpec.from_tag(tag))

    def create_pattern_bundle(self, name: str) -> BundleResult:
        """Build the named bundle declared under ``bundles.definitions``."""
        patterns = self.config.bundles.definitions.get(name)
        if not patterns:
            return BundleResult(success=False, error=f"No bundle definition named {name!r}")
        return self._create(BundleSpec.from_patterns(name, patterns))

    def regenerate_bundle(self, bundle_id: str) -> BundleResult:
        """Replace a bundle with a freshly built one carrying a new identifier."""
        try:
            bundle = self.registry.get(bundle_id)
        except BundleError as exc:
            return BundleResult(success=False, error=str(exc))
        manifest = self.registry.load_manifest(bundle)
        if manifest is None:
            return BundleResult(success=False, error=f"Bundle {bundle_id} has no readable manifest")
        artifacts = [path for path in (bundle.content_path, bundle.manifest_path) if path]
        result = self._builder().regenerate(manifest, self.refresh(), artifacts=artifacts)
        self._sync_records()
        return result

    def list_bundles(self) -> list[Bundle]:
        return self.registry.list_bundles()

    def analyze_bundle(self, bundle_id: str) -> BundleAnalysis:
        """Compare a bundle with a fresh enumeration of the project.

        Unknown bundles yield an unavailable result.
        """
        try:
            bundle = self.registry.get(bundle_id)
        except BundleError as exc:
            LOGGER.warning("%s", exc)
            return analyze_bundle(None, [])
        return analyze_bundle(self.registry.load_manifest(bundle), self.refresh())

    # Internal helpers -------------------------------------------------

    def _create(
        self, spec: BundleSpec, records: Optional[list[FileRecord]] = None
    ) -> BundleResult:
        result = self._builder().create(spec, records if records is not None else self.refresh())
        self._sync_records()
        return result

    def _builder(self) -> BundleBuilder:
        return BundleBuilder(
            self.paths,
            self.state,
            self.config_manager.load_ignore_patterns(),
            self.project_name,
            include_tree=self.config.bundles.include_tree,
        )

    def _records(self) -> list[FileRecord]:
        return self.records if self.records else self.refresh()

    def _sync_records(self) -> None:
        if not self.records:
            return
        state = self.state.load()
        for record in self.records:
            entry = state.files.get(record.path)
            if entry is not None:
                record.is_staged = entry.is_staged
                record.is_changed = entry.is_changed
                record.tags = list(entry.tags)
                record.master_bundle_id = entry.master_bundle_id


__all__ = ["ProjectSession"]
