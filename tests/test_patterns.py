"""Pattern matcher tests."""

from __future__ import annotations

import logging

import pytest

from cntx.ingestion.patterns import (
    is_always_ignored,
    is_ignored,
    matches,
    matches_directory,
)


@pytest.mark.parametrize(
    ("path", "pattern", "expected"),
    [
        ("src/app.ts", "**/*.ts", True),
        ("app.ts", "*", True),
        ("src/app.ts", "*", False),
        ("anything/at/all.txt", "**/*", True),
        ("README.md", "README.md", True),
        ("src/app.ts", "src/*.ts", True),
        ("src/lib/app.ts", "src/*.ts", False),
        ("src/a.ts", "src/?.ts", True),
        ("src/ab.ts", "src/?.ts", False),
        ("notes.md", "*.MD", True),
        ("docs/Guide.MD", "*.md", True),
        ("src/app.ts", "src/app.tsx", False),
        ("file1.txt", "file[0-9].txt", True),
        ("filex.txt", "file[!0-9].txt", True),
    ],
)
def test_matches(path: str, pattern: str, expected: bool) -> None:
    assert matches(path, pattern) is expected


def test_dot_is_literal() -> None:
    assert not matches("appxts", "app.ts")


def test_invalid_pattern_does_not_match_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="cntx.ingestion.patterns"):
        assert matches("src/[weird", "src/[weird*") is False
    assert "invalid pattern" in caplog.text


def test_matches_directory_at_any_depth() -> None:
    assert matches_directory("node_modules/x.js", "node_modules")
    assert matches_directory("packages/web/node_modules", "node_modules")
    assert matches_directory("a/node_modules/b", "node_modules")
    assert matches_directory("Build", "build")
    assert not matches_directory("builder", "build")


def test_is_ignored_uses_basename_and_parent_directories() -> None:
    patterns = ["*.md", ".DS_Store", "dist"]

    assert is_ignored("docs/guide.md", patterns)
    assert is_ignored("assets/.DS_Store", patterns)
    assert is_ignored("dist/app.js", patterns)
    assert is_ignored("dist", patterns, is_directory=True)
    assert not is_ignored("src/app.ts", patterns)


def test_always_ignored_checks_every_segment() -> None:
    assert is_always_ignored(".git/config")
    assert is_always_ignored("web/node_modules/react/index.js")
    assert is_always_ignored(".cntx/state/file.json")
    assert not is_always_ignored("src/git.ts")
