"""Custom exceptions for configuration management."""


class ConfigError(Exception):
    """Raised when configuration data cannot be processed."""


class ConfigParseError(ConfigError):
    """Raised when an ignore-pattern or tag document is malformed."""
