"""Serialize a resolved file set into the XML bundle document."""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional, Sequence
from xml.sax.saxutils import escape, quoteattr

from cntx.ingestion.models import FileRecord

from .models import BundleManifest
from .tree import build_tree, render_ascii_tree, render_xml_tree

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def _isoformat(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def render_document(
    manifest: BundleManifest,
    records: Sequence[FileRecord],
    tags: Mapping[str, Sequence[str]],
    *,
    project_name: str,
    ignore_patterns: Sequence[str] = (),
    include_tree: bool = True,
) -> str:
    """Return the bundle document for ``records``.

    Args:
        manifest: Manifest of the bundle being rendered; supplies id, kind and labels.
        records: Files to embed, in output order.
        tags: Current tags per path.
        project_name: Project label for the metadata block and ASCII tree.
        ignore_patterns: Ignore list active when the bundle was built.
        include_tree: Whether to embed the directory tree summaries.

    Returns:
        str: XML text ending with a newline.
    """
    kind = manifest.type.value if manifest.type else "custom"
    attributes = [
        f"id={quoteattr(manifest.id)}",
        f"type={quoteattr(kind)}",
        f"created={quoteattr(_isoformat(manifest.created))}",
    ]
    if manifest.derived_from_tag:
        attributes.append(f"tag={quoteattr(manifest.derived_from_tag)}")

    lines = [XML_DECLARATION, f"<bundle {' '.join(attributes)}>"]
    lines.extend(
        _metadata(manifest, kind, project_name=project_name, ignore_patterns=ignore_patterns)
    )
    if include_tree:
        tree = build_tree(records, tags)
        lines.append(render_xml_tree(tree))
        lines.append(
            "<asciiTree>\n"
            + escape(render_ascii_tree(tree, len(records), project_name))
            + "\n</asciiTree>"
        )

    lines.append("<documents>")
    for index, record in enumerate(records, start=1):
        lines.append(_document(index, record, tags.get(record.path, ())))
    lines.append("</documents>")
    lines.append("</bundle>")
    return "\n".join(lines) + "\n"


def _metadata(
    manifest: BundleManifest,
    kind: str,
    *,
    project_name: str,
    ignore_patterns: Sequence[str],
) -> list[str]:
    lines = [
        "<metadata>",
        f"  <project>{escape(project_name)}</project>",
        f"  <name>{escape(manifest.name or manifest.id)}</name>",
        f"  <fileCount>{manifest.file_count}</fileCount>",
        f"  <bundleType>{kind}</bundleType>",
    ]
    if manifest.derived_from_tag:
        lines.append(f"  <derivedFromTag>{escape(manifest.derived_from_tag)}</derivedFromTag>")
    if manifest.description:
        lines.append(f"  <description>{escape(manifest.description)}</description>")
    lines.append("  <ignorePatterns>")
    lines.extend(f"    <pattern>{escape(pattern)}</pattern>" for pattern in ignore_patterns)
    lines.append("  </ignorePatterns>")
    lines.append("</metadata>")
    return lines


def _document(index: int, record: FileRecord, tags: Sequence[str]) -> str:
    metadata = " ".join(
        [
            f'size="{record.size}"',
            f"lastModified={quoteattr(_isoformat(record.last_modified))}",
            f"extension={quoteattr(record.extension)}",
            f"directory={quoteattr(record.directory)}",
        ]
    )
    return "\n".join(
        [
            f'<document index="{index}">',
            f"<source>{escape(record.path)}</source>",
            f"<tags>{escape(','.join(tags))}</tags>",
            f"<metadata {metadata}/>",
            f"<content>{escape(record.content)}</content>",
            "</document>",
        ]
    )


def describe(manifest: BundleManifest) -> Optional[str]:
    """Return the explicit description, or the generated one for tag bundles."""
    if manifest.description:
        return manifest.description
    if manifest.derived_from_tag:
        return f'Files tagged with "{manifest.derived_from_tag}"'
    return None


__all__ = ["XML_DECLARATION", "render_document", "describe"]
