"""Configuration management for cntx projects."""

from __future__ import annotations

import logging
import os
import textwrap
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from cntx.paths import ProjectPaths
from cntx.storage import atomic_write_text

from .defaults import DEFAULT_IGNORE_PATTERNS, DEFAULT_TAGS
from .exceptions import ConfigError, ConfigParseError
from .models import CntxConfig, TagDefinition
from .resolver import parse_env_overrides, resolve_with_precedence

LOGGER = logging.getLogger(__name__)

_HEADERS = {
    "settings": textwrap.dedent(
        """\
        # cntx project settings
        # Generated automatically; values may be overridden with CNTX__SECTION__KEY variables.
        """
    ),
    "ignore": textwrap.dedent(
        """\
        # cntx ignore patterns, one glob per entry, evaluated in order.
        # Files carrying tags or staged for a bundle are kept in the master bundle regardless.
        """
    ),
    "tags": textwrap.dedent(
        """\
        # cntx tag catalog: tag name -> color and description.
        """
    ),
}


class ConfigManager:
    """Load and persist the settings, ignore list and tag catalog of one project."""

    def __init__(
        self,
        paths: ProjectPaths,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._paths = paths
        self._env = env if env is not None else os.environ

    @property
    def config_path(self) -> Path:
        """Return the settings file location."""
        return self._paths.settings_file

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
        env_overrides: Mapping[str, str] | None = None,
    ) -> CntxConfig:
        """Load settings from disk, applying environment and explicit overrides.

        Args:
            cli_overrides: Highest precedence values, dotted keys allowed.
            include_env: Whether ``CNTX__`` environment variables are honoured.
            ensure_file: Whether to create default config files first.
            env_overrides: Environment mapping to use instead of ``os.environ``.

        Returns:
            CntxConfig: Validated settings.

        Raises:
            ConfigError: If the settings document or an override is invalid.
        """
        if ensure_file:
            self.ensure_exists()

        env_data: Mapping[str, str] | None = None
        if include_env:
            env_data = env_overrides if env_overrides is not None else self._env

        return resolve_with_precedence(
            defaults=CntxConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=parse_env_overrides(env_data) if env_data else None,
            cli_overrides=cli_overrides,
        )

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored in ``settings.yaml``."""
        path = self.config_path
        if not path.exists():
            return {}
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse configuration file: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError("Configuration file must contain a mapping at the top level.")
        return raw

    def save(self, config: CntxConfig | Mapping[str, Any]) -> None:
        """Persist settings to ``settings.yaml``."""
        data = config.model_dump(mode="python") if isinstance(config, CntxConfig) else dict(config)
        self._write_yaml(self.config_path, data, header="settings")

    def ensure_exists(self) -> Path:
        """Create any missing config document with its defaults.

        Returns:
            Path: The settings file location.
        """
        self._paths.config_dir.mkdir(parents=True, exist_ok=True)
        if not self.config_path.exists():
            self.save(CntxConfig())
        if not self._paths.ignore_file.exists():
            self.save_ignore_patterns(DEFAULT_IGNORE_PATTERNS)
        if not self._paths.tags_file.exists():
            self.save_tags(DEFAULT_TAGS)
        return self.config_path

    # Ignore patterns ---------------------------------------------------

    def load_ignore_patterns(self) -> list[str]:
        """Return the ordered ignore list, falling back to defaults when unreadable."""
        path = self._paths.ignore_file
        if not path.exists():
            return list(DEFAULT_IGNORE_PATTERNS)
        try:
            raw = self._read_yaml(path)
            if raw is None:
                return []
            if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
                raise ConfigParseError(f"{path.name} must contain a list of glob strings.")
        except ConfigParseError as exc:
            LOGGER.warning("Using default ignore patterns: %s", exc)
            return list(DEFAULT_IGNORE_PATTERNS)

        patterns: list[str] = []
        for item in raw:
            pattern = item.strip()
            if pattern and pattern not in patterns:
                patterns.append(pattern)
        return patterns

    def save_ignore_patterns(self, patterns: list[str]) -> None:
        self._write_yaml(self._paths.ignore_file, list(patterns), header="ignore")

    def add_ignore_pattern(self, pattern: str) -> bool:
        """Append ``pattern`` to the ignore list unless it is already present."""
        patterns = self.load_ignore_patterns()
        pattern = pattern.strip()
        if not pattern or pattern in patterns:
            return False
        patterns.append(pattern)
        self.save_ignore_patterns(patterns)
        return True

    def remove_ignore_pattern(self, pattern: str) -> bool:
        """Drop ``pattern`` from the ignore list; returns False when it was absent."""
        patterns = self.load_ignore_patterns()
        if pattern not in patterns:
            return False
        patterns.remove(pattern)
        self.save_ignore_patterns(patterns)
        return True

    # Tag catalog -------------------------------------------------------

    def load_tags(self) -> dict[str, TagDefinition]:
        """Return tag definitions keyed by name, falling back to defaults when unreadable."""
        path = self._paths.tags_file
        if not path.exists():
            return dict(DEFAULT_TAGS)
        try:
            raw = self._read_yaml(path) or {}
            if not isinstance(raw, dict):
                raise ConfigParseError(f"{path.name} must contain a mapping of tag names.")
            tags: dict[str, TagDefinition] = {}
            for name, payload in raw.items():
                fields = payload if isinstance(payload, dict) else {}
                tags[str(name)] = TagDefinition(name=str(name), **fields)
        except ValidationError as exc:
            LOGGER.warning("Using default tags: invalid tag definition in %s: %s", path.name, exc)
            return dict(DEFAULT_TAGS)
        except (ConfigParseError, TypeError) as exc:
            LOGGER.warning("Using default tags: %s", exc)
            return dict(DEFAULT_TAGS)
        return tags

    def save_tags(self, tags: Mapping[str, TagDefinition]) -> None:
        payload = {
            name: tag.model_dump(mode="python", exclude={"name"}) for name, tag in tags.items()
        }
        self._write_yaml(self._paths.tags_file, payload, header="tags")

    # Internal helpers -------------------------------------------------

    def _read_yaml(self, path: Path) -> Any:
        try:
            return yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigParseError(f"Failed to parse {path.name}: {exc}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigParseError(f"Failed to read {path.name}: {exc}") from exc

    def _write_yaml(self, path: Path, data: Any, *, header: str) -> None:
        serialized = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        stamp = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        atomic_write_text(path, f"{_HEADERS[header]}# Last updated: {stamp}\n{serialized}")


__all__ = [
    "ConfigManager",
    "CntxConfig",
    "TagDefinition",
    "DEFAULT_IGNORE_PATTERNS",
    "DEFAULT_TAGS",
    "resolve_with_precedence",
    "ConfigError",
    "ConfigParseError",
]
