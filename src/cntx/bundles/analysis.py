"""Compare a bundle manifest with the live project to measure drift."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field

from cntx.ingestion.models import FileRecord

from .errors import MissingManifestError
from .models import BundleManifest

LOGGER = logging.getLogger(__name__)


class BundleAnalysis(BaseModel):
    """Freshness of every file a bundle embedded.

    Attributes:
        fresh_paths: Paths unchanged since the bundle was built.
        stale_paths: Paths modified after the bundle was built.
        missing_paths: Paths no longer present in the project.
        tag_counts: Occurrences of each tag across all manifest paths.
        staleness_percent: Rounded share of stale paths among fresh and stale ones.
        available: False when no manifest could be compared.
        note: Explanation when the analysis is unavailable.
    """

    fresh_paths: List[str] = Field(default_factory=list)
    stale_paths: List[str] = Field(default_factory=list)
    missing_paths: List[str] = Field(default_factory=list)
    tag_counts: Dict[str, int] = Field(default_factory=dict)
    staleness_percent: int = 0
    available: bool = True
    note: Optional[str] = None

    @property
    def level(self) -> str:
        return staleness_level(self.staleness_percent)

    def sorted_tag_counts(self) -> list[tuple[str, int]]:
        return sorted_tag_counts(self.tag_counts)


def analyze_bundle(
    manifest: Optional[BundleManifest], live_records: Iterable[FileRecord]
) -> BundleAnalysis:
    """Classify each manifest path as fresh, stale or missing.

    Args:
        manifest: Snapshot recorded when the bundle was built.
        live_records: Current enumeration of the project.

    Returns:
        BundleAnalysis: Result with ``available=False`` when ``manifest`` is None.
    """
    if manifest is None:
        error = MissingManifestError("Bundle has no manifest; staleness analysis unavailable")
        LOGGER.info("%s", error)
        return BundleAnalysis(available=False, note=str(error))

    live = {record.path: record for record in live_records}
    analysis = BundleAnalysis()
    for entry in manifest.files:
        record = live.get(entry.path)
        if record is None:
            analysis.missing_paths.append(entry.path)
        elif record.last_modified > entry.last_modified:
            analysis.stale_paths.append(entry.path)
        else:
            analysis.fresh_paths.append(entry.path)

        tags = entry.tags or (record.tags if record is not None else [])
        for tag in tags:
            analysis.tag_counts[tag] = analysis.tag_counts.get(tag, 0) + 1

    tracked = len(analysis.fresh_paths) + len(analysis.stale_paths)
    if tracked:
        # Halves round up.
        analysis.staleness_percent = (200 * len(analysis.stale_paths) + tracked) // (2 * tracked)
    return analysis


def staleness_level(percent: int) -> str:
    """Return the display level for a staleness percentage."""
    if percent <= 20:
        return "green"
    if percent <= 50:
        return "yellow"
    if percent <= 80:
        return "orange"
    return "red"


def sorted_tag_counts(counts: Dict[str, int]) -> list[tuple[str, int]]:
    """Return tag counts ordered by descending count, then name."""
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


__all__ = ["BundleAnalysis", "analyze_bundle", "staleness_level", "sorted_tag_counts"]
