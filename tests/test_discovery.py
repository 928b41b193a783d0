"""File enumeration tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from cntx.ingestion import DirectoryListError, FileEnumerator


def _write(root: Path, relative: str, text: str = "x") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    _write(tmp_path, "src/app.ts", "export const app = 1;\n")
    _write(tmp_path, "src/lib/util.ts", "export {};\n")
    _write(tmp_path, "README.md", "# Title\n")
    _write(tmp_path, "dist/bundle.js", "compiled")
    _write(tmp_path, "node_modules/pkg/index.js", "module")
    _write(tmp_path, ".git/HEAD", "ref")
    _write(tmp_path, ".cntx/state/file.json", "{}")
    return tmp_path


def test_scan_applies_always_ignored_and_patterns(project: Path) -> None:
    result = FileEnumerator(read_workers=2).scan(project, ["dist", "*.md"])

    assert [record.path for record in result.records] == ["src/app.ts", "src/lib/util.ts"]
    assert result.errors == []


def test_records_carry_metadata_and_content(project: Path) -> None:
    records = FileEnumerator().enumerate(project, [])
    app = next(record for record in records if record.path == "src/app.ts")

    assert app.name == "app.ts"
    assert app.directory == "src"
    assert app.extension == "ts"
    assert app.content == "export const app = 1;\n"
    assert app.size == len("export const app = 1;\n")
    assert app.last_modified.timestamp() == pytest.approx(
        (project / "src/app.ts").stat().st_mtime
    )
    readme = next(record for record in records if record.path == "README.md")
    assert readme.directory == ""


def test_retained_paths_survive_ignore_patterns(project: Path) -> None:
    result = FileEnumerator().scan(
        project, ["dist", "*.md"], retain=["README.md", "dist/bundle.js"]
    )

    paths = [record.path for record in result.records]
    assert "README.md" in paths
    assert "dist/bundle.js" in paths


def test_retain_never_overrides_always_ignored(project: Path) -> None:
    records = FileEnumerator().scan(project, [], retain=["node_modules/pkg/index.js"]).records

    assert all(not record.path.startswith("node_modules") for record in records)


symlinks = pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges")


@symlinks
def test_symlinked_directories_are_not_descended_by_default(tmp_path: Path) -> None:
    _write(tmp_path, "pkg/a.ts")
    (tmp_path / "pkg" / "loop").symlink_to(tmp_path / "pkg", target_is_directory=True)

    records = FileEnumerator().enumerate(tmp_path, [])

    assert [record.path for record in records] == ["pkg/a.ts"]


@symlinks
def test_followed_symlink_cycles_visit_each_directory_once(tmp_path: Path) -> None:
    project = tmp_path / "project"
    _write(project, "pkg/a.ts")
    _write(tmp_path, "outside/lib.ts")
    (project / "pkg" / "loop").symlink_to(project / "pkg", target_is_directory=True)
    (project / "shared").symlink_to(tmp_path / "outside", target_is_directory=True)

    records = FileEnumerator(follow_symlinks=True).enumerate(project, [])

    assert [record.path for record in records] == ["pkg/a.ts", "shared/lib.ts"]


@symlinks
def test_symlinked_files_are_read_through_their_target(tmp_path: Path) -> None:
    _write(tmp_path, "real.ts", "real")
    (tmp_path / "alias.ts").symlink_to(tmp_path / "real.ts")

    records = FileEnumerator().enumerate(tmp_path, [])

    assert [(record.path, record.content) for record in records] == [
        ("alias.ts", "real"),
        ("real.ts", "real"),
    ]


def test_undecodable_content_is_replaced(tmp_path: Path) -> None:
    (tmp_path / "blob.bin").write_bytes(b"ok\xff\xfe")

    (record,) = FileEnumerator().enumerate(tmp_path, [])

    assert record.content.startswith("ok")
    assert "�" in record.content


@pytest.mark.skipif(
    sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
    reason="permission bits are not enforced",
)
def test_unlistable_directory_is_skipped(project: Path) -> None:
    locked = project / "locked"
    _write(project, "locked/secret.ts")
    locked.chmod(0)
    try:
        result = FileEnumerator().scan(project, [])
    finally:
        locked.chmod(0o755)

    assert "locked/secret.ts" not in [record.path for record in result.records]
    assert "src/app.ts" in [record.path for record in result.records]
    assert any(isinstance(error, DirectoryListError) for error in result.errors)


def test_unreadable_file_yields_empty_content(
    project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    original = Path.read_text

    def failing(self: Path, *args: object, **kwargs: object) -> str:
        if self.name == "util.ts":
            raise PermissionError(13, "Permission denied")
        return original(self, *args, **kwargs)  # type: ignore[arg-type]

    monkeypatch.setattr(Path, "read_text", failing)

    result = FileEnumerator().scan(project, [])
    util = next(record for record in result.records if record.path == "src/lib/util.ts")

    assert util.content == ""
    assert [error.path for error in result.errors] == ["src/lib/util.ts"]
