"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from cntx.config import (
    DEFAULT_IGNORE_PATTERNS,
    DEFAULT_TAGS,
    CntxConfig,
    ConfigError,
    ConfigManager,
    TagDefinition,
    resolve_with_precedence,
)
from cntx.paths import ProjectPaths


def _manager(tmp_path: Path) -> ConfigManager:
    return ConfigManager(ProjectPaths(tmp_path), env={})


def test_ensure_exists_writes_all_defaults(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    path = manager.ensure_exists()

    assert path.exists()
    text = path.read_text(encoding="utf-8")
    assert "cntx project settings" in text
    assert "Last updated:" in text
    assert manager.load_ignore_patterns() == DEFAULT_IGNORE_PATTERNS
    assert set(manager.load_tags()) == set(DEFAULT_TAGS)
    assert isinstance(manager.load(include_env=False), CntxConfig)


def test_precedence_file_then_env_then_explicit(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.ensure_exists()
    manager.save({"scan": {"read_workers": 2, "encoding": "latin-1"}})

    config = manager.load(
        env_overrides={"CNTX__SCAN__READ_WORKERS": "4", "CNTX__STATE__LOAD_RETRIES": "7"},
        cli_overrides={"scan.read_workers": 6},
    )

    assert config.scan.encoding == "latin-1"
    assert config.state.load_retries == 7
    # Explicit overrides beat the environment
    assert config.scan.read_workers == 6


def test_follow_symlinks_is_off_unless_enabled(tmp_path: Path) -> None:
    manager = _manager(tmp_path)

    assert manager.load(ensure_file=False).scan.follow_symlinks is False
    enabled = manager.load(
        env_overrides={"CNTX__SCAN__FOLLOW_SYMLINKS": "true"}, ensure_file=False
    )
    assert enabled.scan.follow_symlinks is True


def test_invalid_settings_raise_config_error(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.ensure_exists()
    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load(include_env=False)


def test_unknown_setting_is_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=CntxConfig(), cli_overrides={"scan.unknown": 1})


def test_malformed_ignore_file_falls_back_to_defaults(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.ensure_exists()
    ProjectPaths(tmp_path).ignore_file.write_text("{unclosed: [", encoding="utf-8")

    assert manager.load_ignore_patterns() == DEFAULT_IGNORE_PATTERNS


def test_ignore_pattern_maintenance_is_idempotent(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.save_ignore_patterns(["*.md"])

    assert manager.add_ignore_pattern("dist") is True
    assert manager.add_ignore_pattern("dist") is False
    assert manager.load_ignore_patterns() == ["*.md", "dist"]
    assert manager.remove_ignore_pattern("*.md") is True
    assert manager.remove_ignore_pattern("*.md") is False
    assert manager.load_ignore_patterns() == ["dist"]


def test_tags_round_trip_and_invalid_catalog_falls_back(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.save_tags({"core": TagDefinition(name="core", color="#fff", description="Core code")})

    tags = manager.load_tags()
    assert tags == {"core": TagDefinition(name="core", color="#fff", description="Core code")}

    ProjectPaths(tmp_path).tags_file.write_text("core: {shade: red}\n", encoding="utf-8")
    assert set(manager.load_tags()) == set(DEFAULT_TAGS)
