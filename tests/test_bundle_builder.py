"""Bundle builder tests."""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from cntx.bundles import BundleBuilder, BundleKind, BundleManifest, BundleSpec, EmptyTagBundleError
from cntx.bundles.builder import new_bundle_id
from cntx.config.models import StateSettings
from cntx.paths import ProjectPaths
from cntx.state import StateRepository


@pytest.fixture()
def repo(tmp_path: Path) -> StateRepository:
    return StateRepository(ProjectPaths(tmp_path), StateSettings(retry_delay_seconds=0))


@pytest.fixture()
def builder(tmp_path: Path, repo: StateRepository) -> BundleBuilder:
    paths = ProjectPaths(tmp_path)
    paths.initialize()
    return BundleBuilder(paths, repo, ["*.md"], "demo")


@pytest.fixture()
def records(make_record):
    return [
        make_record("a.ts", "const a = 1 < 2;"),
        make_record("b.ts", "const b = 2;"),
        make_record("README.md", "# Readme"),
    ]


def test_bundle_ids_are_prefixed_by_kind() -> None:
    pattern = r"-\d{8}T\d{6}Z-[0-9a-z]{5}$"

    assert re.match(r"^master" + pattern, new_bundle_id(BundleSpec.master()))
    assert re.match(r"^tag-my-tag" + pattern, new_bundle_id(BundleSpec.from_tag("My Tag")))
    assert re.match(r"^bundle" + pattern, new_bundle_id(BundleSpec.from_paths(["a.ts"])))


def test_master_bundle_respects_ignore_patterns(builder, repo, records) -> None:
    built = builder.build(BundleSpec.master(), records, repo.load())

    assert built.manifest.paths == ["a.ts", "b.ts"]
    assert built.manifest.file_count == 2
    assert built.manifest.type is BundleKind.MASTER


def test_metadata_overrides_ignore_patterns(builder, repo, records) -> None:
    repo.add_tag_to_files("core", ["README.md"])

    built = builder.build(BundleSpec.master(), records, repo.load())

    assert "README.md" in built.manifest.paths
    entry = next(entry for entry in built.manifest.files if entry.path == "README.md")
    assert entry.tags == ["core"]


def test_state_tags_win_over_record_tags(builder, repo, make_record) -> None:
    stale = [make_record("a.ts", tags=["old"])]
    repo.add_tag_to_files("new", ["a.ts"])
    repo.remove_tag_from_files("old", ["a.ts"])

    built = builder.build(BundleSpec.master(), stale, repo.load())

    assert built.manifest.files[0].tags == ["new"]
    assert "<tags>new</tags>" in built.content


def test_document_embeds_escaped_content_and_metadata(builder, repo, records) -> None:
    built = builder.build(BundleSpec.master(), records, repo.load())
    content = built.content

    assert content.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert f'<bundle id="{built.manifest.id}" type="master"' in content
    assert "<project>demo</project>" in content
    assert "<pattern>*.md</pattern>" in content
    assert "const a = 1 &lt; 2;" in content
    assert '<document index="1">' in content
    assert 'extension="ts"' in content
    assert "<asciiTree>" in content and "2 files, 0 directories" in content


def test_tag_bundle_selects_tagged_files_only(builder, repo, records) -> None:
    repo.add_tag_to_files("core", ["b.ts"])

    built = builder.build(BundleSpec.from_tag("core"), records, repo.load())

    assert built.manifest.paths == ["b.ts"]
    assert built.manifest.derived_from_tag == "core"
    assert 'tag="core"' in built.content


def test_empty_tag_bundle_is_an_error(tmp_path: Path, builder, repo, records) -> None:
    with pytest.raises(EmptyTagBundleError):
        builder.build(BundleSpec.from_tag("nothing"), records, repo.load())

    result = builder.create(BundleSpec.from_tag("nothing"), records)

    assert result.success is False
    assert "nothing" in (result.error or "")
    assert not (ProjectPaths(tmp_path).tag_bundles_dir / "nothing").exists()


def test_explicit_paths_skip_unknown_files(builder, repo, records) -> None:
    built = builder.build(BundleSpec.from_paths(["b.ts", "gone.ts"]), records, repo.load())

    assert built.manifest.paths == ["b.ts"]


def test_create_master_persists_artifacts_and_updates_state(
    tmp_path: Path, builder, repo, records
) -> None:
    repo.add_tag_to_files("core", ["a.ts"])
    repo.toggle_staged(["a.ts"])

    result = builder.create(BundleSpec.master(), records)

    assert result.success and result.bundle_id
    paths = ProjectPaths(tmp_path)
    content = paths.master_dir / f"{result.bundle_id}.txt"
    manifest = paths.master_dir / f"{result.bundle_id}-manifest.json"
    assert content.exists() and manifest.exists()
    assert BundleManifest.model_validate(json.loads(manifest.read_text())).paths == ["a.ts", "b.ts"]

    state = repo.load()
    assert state.master_bundle is not None and state.master_bundle.id == result.bundle_id
    assert state.files["a.ts"].master_bundle_id == result.bundle_id
    assert state.files["a.ts"].is_staged is False
    assert state.files["a.ts"].tags == ["core"]


def test_tag_bundle_does_not_mutate_state(tmp_path: Path, builder, repo, records) -> None:
    repo.add_tag_to_files("core", ["a.ts"])
    repo.toggle_staged(["a.ts"])

    result = builder.create(BundleSpec.from_tag("core"), records)

    assert result.success
    assert (ProjectPaths(tmp_path).tag_bundles_dir / "core" / f"{result.bundle_id}.txt").exists()
    entry = repo.load().files["a.ts"]
    assert entry.is_staged is True
    assert entry.master_bundle_id is None


def test_custom_bundle_records_association(tmp_path: Path, builder, repo, records) -> None:
    repo.toggle_staged(["b.ts"])

    result = builder.create(BundleSpec.from_paths(["b.ts"]), records)

    assert (ProjectPaths(tmp_path).bundles_dir / f"{result.bundle_id}.txt").exists()
    entry = repo.load().files["b.ts"]
    assert entry.bundle_ids == [result.bundle_id]
    assert entry.is_staged is False


def test_regenerate_replaces_bundle_with_fresh_id(tmp_path: Path, builder, repo, records) -> None:
    first = builder.create(BundleSpec.from_paths(["a.ts", "b.ts"], name="pair"), records)
    assert first.manifest is not None

    second = builder.regenerate(first.manifest, records)

    assert second.success and second.bundle_id != first.bundle_id
    assert second.manifest is not None and second.manifest.name == "pair"
    bundles_dir = ProjectPaths(tmp_path).bundles_dir
    assert not (bundles_dir / f"{first.bundle_id}.txt").exists()
    assert (bundles_dir / f"{second.bundle_id}.txt").exists()
    assert repo.load().files["a.ts"].bundle_ids == [second.bundle_id]


def test_write_failure_is_reported(builder, records, monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(*args, **kwargs):
        raise OSError("read-only file system")

    monkeypatch.setattr("cntx.bundles.builder.atomic_write_text", refuse)

    result = builder.create(BundleSpec.master(), records)

    assert result.success is False
    assert "read-only" in (result.error or "")
