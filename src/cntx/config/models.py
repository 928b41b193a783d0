"""Configuration models describing cntx project settings."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CntxBaseModel(BaseModel):
    """Shared configuration for cntx settings models."""

    model_config = ConfigDict(extra="forbid")


class StateSettings(CntxBaseModel):
    """Options for reading the persisted watch state.

    Attributes:
        load_retries: Number of retries when the state file is temporarily unreadable.
        retry_delay_seconds: Delay between read attempts.
    """

    load_retries: int = 3
    retry_delay_seconds: float = 0.1


class ScanSettings(CntxBaseModel):
    """Options governing file enumeration.

    Attributes:
        read_workers: Thread count used to read file contents in parallel.
        encoding: Text encoding used when decoding file contents.
        follow_symlinks: Whether to descend into symlinked directories.
    """

    read_workers: int = 8
    encoding: str = "utf-8"
    follow_symlinks: bool = False


class BundleSettings(CntxBaseModel):
    """Options governing bundle generation.

    Attributes:
        project_name: Name embedded in bundle headers; defaults to the directory name.
        include_tree: Whether bundle headers embed the directory tree.
        definitions: Named custom bundles mapped to their glob patterns.
    """

    project_name: Optional[str] = None
    include_tree: bool = True
    definitions: Dict[str, List[str]] = Field(default_factory=dict)


class LoggingSettings(CntxBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file_enabled: Whether sessions write ``.cntx/cntx.log``.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file_enabled: bool = False
    max_size_mb: int = 5
    backup_count: int = 3


class CntxConfig(CntxBaseModel):
    """Top-level settings document stored in ``config/settings.yaml``."""

    state: StateSettings = Field(default_factory=StateSettings)
    scan: ScanSettings = Field(default_factory=ScanSettings)
    bundles: BundleSettings = Field(default_factory=BundleSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class TagDefinition(CntxBaseModel):
    """User-defined tag with its display hints.

    Attributes:
        name: Unique tag name.
        color: Opaque display color string.
        description: Human-readable purpose of the tag.
    """

    name: str
    color: str = "#94a3b8"
    description: str = ""


__all__ = [
    "CntxBaseModel",
    "StateSettings",
    "ScanSettings",
    "BundleSettings",
    "LoggingSettings",
    "CntxConfig",
    "TagDefinition",
]
