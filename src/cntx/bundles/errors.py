"""Bundle building and lookup errors."""


class BundleError(Exception):
    """Base exception for bundle operations."""


class EmptyTagBundleError(BundleError):
    """Raised when a tag bundle would contain no files."""

    def __init__(self, tag: str) -> None:
        super().__init__(f'No files are tagged with "{tag}"')
        self.tag = tag


class MissingManifestError(BundleError):
    """Raised when staleness analysis has no manifest to compare against."""


class BundleNotFoundError(BundleError):
    """Raised when no persisted bundle carries the requested identifier."""
