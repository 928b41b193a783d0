"""Filesystem layout of the project-local ``.cntx`` directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

DEFAULT_STATE_DIRNAME = ".cntx"


@dataclass(frozen=True, slots=True)
class ProjectPaths:
    """Resolve every artifact location for a watched project.

    Attributes:
        root: Project directory being bundled.
        base_dirname: Name of the tool directory created inside ``root``.
    """

    root: Path
    base_dirname: str = DEFAULT_STATE_DIRNAME

    @property
    def base_dir(self) -> Path:
        return self.root / self.base_dirname

    @property
    def config_dir(self) -> Path:
        return self.base_dir / "config"

    @property
    def settings_file(self) -> Path:
        return self.config_dir / "settings.yaml"

    @property
    def tags_file(self) -> Path:
        return self.config_dir / "tags.yaml"

    @property
    def ignore_file(self) -> Path:
        return self.config_dir / "pattern-ignore.yaml"

    @property
    def state_dir(self) -> Path:
        return self.base_dir / "state"

    @property
    def state_file(self) -> Path:
        return self.state_dir / "file.json"

    @property
    def bundles_dir(self) -> Path:
        return self.base_dir / "bundles"

    @property
    def master_dir(self) -> Path:
        return self.bundles_dir / "master"

    @property
    def tag_bundles_dir(self) -> Path:
        return self.bundles_dir / "tag-bundles"

    @property
    def log_file(self) -> Path:
        return self.base_dir / "cntx.log"

    def initialize(self) -> Path:
        """Create the directory skeleton if it does not exist yet.

        Returns:
            Path: The tool directory inside the project root.
        """
        for directory in (
            self.config_dir,
            self.state_dir,
            self.bundles_dir,
            self.master_dir,
            self.tag_bundles_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)
        return self.base_dir


__all__ = ["DEFAULT_STATE_DIRNAME", "ProjectPaths"]
