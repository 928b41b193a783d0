"""Bundle building, listing and staleness analysis."""

from .analysis import BundleAnalysis, analyze_bundle, sorted_tag_counts, staleness_level
from .builder import BundleBuilder, new_bundle_id, spec_from_manifest
from .errors import BundleError, BundleNotFoundError, EmptyTagBundleError, MissingManifestError
from .models import (
    Bundle,
    BundleKind,
    BundleManifest,
    BundleResult,
    BundleSpec,
    BuiltBundle,
    ManifestEntry,
)
from .registry import BundleRegistry

__all__ = [
    "Bundle",
    "BundleAnalysis",
    "BundleBuilder",
    "BundleError",
    "BundleKind",
    "BundleManifest",
    "BundleNotFoundError",
    "BundleRegistry",
    "BundleResult",
    "BundleSpec",
    "BuiltBundle",
    "EmptyTagBundleError",
    "ManifestEntry",
    "MissingManifestError",
    "analyze_bundle",
    "new_bundle_id",
    "sorted_tag_counts",
    "spec_from_manifest",
    "staleness_level",
]
