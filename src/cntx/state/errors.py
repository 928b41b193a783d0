"""State management errors."""


class StateError(Exception):
    """Base exception for state repository operations."""


class StateCorruptError(StateError):
    """Raised when the persisted state document cannot be parsed."""


class PersistWriteError(StateError):
    """Raised when a state, manifest or bundle document cannot be written."""
