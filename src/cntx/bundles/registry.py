"""Discover persisted bundles and reconstruct their listing metadata."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional
from xml.sax.saxutils import unescape

from pydantic import ValidationError

from cntx.paths import ProjectPaths
from cntx.state import StateRepository

from .builder import CONTENT_SUFFIX, MANIFEST_SUFFIX
from .document import describe
from .errors import BundleError, BundleNotFoundError
from .models import Bundle, BundleKind, BundleManifest

LOGGER = logging.getLogger(__name__)

_HEADER = re.compile(r"<bundle\b([^>]*)>")
_ATTRIBUTE = re.compile(r"""([\w-]+)=(?:"([^"]*)"|'([^']*)')""")
_ATTRIBUTE_ENTITIES = {"&quot;": '"', "&apos;": "'", "&#10;": "\n", "&#13;": "\r", "&#9;": "\t"}
_DOCUMENT = re.compile(r"<document(?:\s[^>]*)?>")
_METADATA = re.compile(r"<metadata>(.*?)</metadata>", re.DOTALL)


class BundleRegistry:
    """Read-only view over the bundles stored in a project's tool directory."""

    def __init__(self, paths: ProjectPaths, state_repository: StateRepository) -> None:
        self._paths = paths
        self._state = state_repository

    def list_bundles(self) -> list[Bundle]:
        """Return every readable bundle, newest first, keeping only the newest master.

        Bundles whose content or manifest cannot be parsed are logged and skipped.
        """
        bundles = list(self._discover())
        masters = [bundle for bundle in bundles if bundle.kind is BundleKind.MASTER]
        others = [bundle for bundle in bundles if bundle.kind is not BundleKind.MASTER]
        if masters:
            others.append(max(masters, key=lambda bundle: bundle.timestamp))
        return sorted(others, key=lambda bundle: bundle.timestamp, reverse=True)

    def master_bundle(self) -> Optional[Bundle]:
        """Return the most recently created master bundle, if any."""
        masters = [bundle for bundle in self._discover() if bundle.kind is BundleKind.MASTER]
        return max(masters, key=lambda bundle: bundle.timestamp) if masters else None

    def get(self, bundle_id: str) -> Bundle:
        """Return the bundle with ``bundle_id``.

        Raises:
            BundleNotFoundError: If no readable bundle has that identifier.
        """
        for bundle in self._discover():
            if bundle.id == bundle_id:
                return bundle
        raise BundleNotFoundError(f"No bundle with id {bundle_id!r}")

    def load_manifest(self, bundle: Bundle) -> Optional[BundleManifest]:
        """Return the bundle's manifest, or None when absent or unreadable."""
        if bundle.manifest_path is None:
            return None
        try:
            return self._read_manifest(bundle.manifest_path)
        except BundleError as exc:
            LOGGER.error("%s", exc)
            return None

    def read_content(self, bundle: Bundle) -> str:
        return bundle.content_path.read_text(encoding="utf-8")

    def latest_master_manifest(self) -> Optional[BundleManifest]:
        master = self.master_bundle()
        return self.load_manifest(master) if master is not None else None

    def delete_bundle(self, bundle: Bundle) -> None:
        """Remove the bundle's content and manifest files."""
        for path in (bundle.content_path, bundle.manifest_path):
            if path is not None:
                path.unlink(missing_ok=True)
        LOGGER.info("Deleted bundle %s", bundle.id)

    def _discover(self) -> Iterator[Bundle]:
        locations: list[tuple[Path, Optional[str], bool]] = [(self._paths.bundles_dir, None, False)]
        if self._paths.tag_bundles_dir.is_dir():
            for directory in sorted(self._paths.tag_bundles_dir.iterdir()):
                if directory.is_dir():
                    locations.append((directory, directory.name, False))
        locations.append((self._paths.master_dir, None, True))

        tagged_paths = self._tagged_paths()
        for directory, tag_dir, in_master in locations:
            if not directory.is_dir():
                continue
            for content_path in sorted(directory.glob(f"*{CONTENT_SUFFIX}")):
                try:
                    yield self._load_bundle(content_path, tag_dir, in_master, tagged_paths)
                except BundleError as exc:
                    LOGGER.error("Skipping bundle %s: %s", content_path.name, exc)

    def _load_bundle(
        self,
        content_path: Path,
        tag_dir: Optional[str],
        in_master: bool,
        tagged_paths: set[str],
    ) -> Bundle:
        bundle_id = content_path.name[: -len(CONTENT_SUFFIX)]
        try:
            content = content_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BundleError(f"Unreadable content: {exc}") from exc

        manifest_path: Optional[Path] = content_path.with_name(f"{bundle_id}{MANIFEST_SUFFIX}")
        manifest = None
        if manifest_path.exists():
            manifest = self._read_manifest(manifest_path)
        else:
            manifest_path = None

        header = _HEADER.search(content)
        attributes = _attributes(header.group(1)) if header else {}

        tag = manifest.derived_from_tag if manifest else None
        tag = tag or attributes.get("tag") or tag_dir
        kind = self._kind(bundle_id, attributes.get("type"), manifest, tag, in_master)
        if kind is not BundleKind.TAG_DERIVED:
            tag = None

        name = _metadata_field(content, "name") or (manifest.name if manifest else None)
        name = name or bundle_id
        description = _metadata_field(content, "description")
        if description is None and manifest is not None:
            description = describe(manifest)
        if description is None and tag:
            description = f'Files tagged with "{tag}"'

        tag_count = len(set(manifest.paths) & tagged_paths) if manifest else 0
        return Bundle(
            name=name,
            id=bundle_id,
            timestamp=self._timestamp(content_path, attributes.get("created"), manifest),
            file_count=len(_DOCUMENT.findall(content)),
            tag_count=tag_count,
            kind=kind,
            derived_from_tag=tag,
            description=description,
            content_path=content_path,
            manifest_path=manifest_path,
        )

    def _read_manifest(self, path: Path) -> BundleManifest:
        try:
            return BundleManifest.model_validate(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as exc:
            raise BundleError(f"Invalid manifest {path.name}: {exc}") from exc

    def _kind(
        self,
        bundle_id: str,
        declared: Optional[str],
        manifest: Optional[BundleManifest],
        tag: Optional[str],
        in_master: bool,
    ) -> BundleKind:
        if declared:
            try:
                return BundleKind(declared)
            except ValueError:
                LOGGER.warning("Bundle %s declares unknown type %r", bundle_id, declared)
        if manifest is not None and manifest.type is not None:
            return manifest.type
        # Legacy artifacts carry no explicit type.
        if bundle_id.startswith("master-") or in_master:
            return BundleKind.MASTER
        if tag:
            return BundleKind.TAG_DERIVED
        return BundleKind.CUSTOM

    def _timestamp(
        self,
        content_path: Path,
        created: Optional[str],
        manifest: Optional[BundleManifest],
    ) -> datetime:
        if manifest is not None:
            return manifest.created
        if created:
            try:
                return _aware(datetime.fromisoformat(created.replace("Z", "+00:00")))
            except ValueError:
                LOGGER.debug("Unparseable created attribute %r", created)
        return datetime.fromtimestamp(content_path.stat().st_mtime, tz=timezone.utc)

    def _tagged_paths(self) -> set[str]:
        """Return tagged paths that still exist in the project."""
        state = self._state.load()
        return {
            path
            for path, entry in state.files.items()
            if entry.tags and (self._paths.root / path).is_file()
        }


def _attributes(header: str) -> dict[str, str]:
    return {
        name: unescape(double or single, _ATTRIBUTE_ENTITIES)
        for name, double, single in _ATTRIBUTE.findall(header)
    }


def _metadata_field(content: str, field: str) -> Optional[str]:
    block = _METADATA.search(content)
    if block is None:
        return None
    match = re.search(rf"<{field}>(.*?)</{field}>", block.group(1), re.DOTALL)
    return unescape(match.group(1)) if match else None


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


__all__ = ["BundleRegistry"]
