"""Directory tree summaries embedded in bundle headers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence
from xml.sax.saxutils import escape, quoteattr

from cntx.ingestion.models import FileRecord


@dataclass(slots=True)
class TreeNode:
    name: str
    path: str
    is_directory: bool
    children: list["TreeNode"] = field(default_factory=list)
    record: Optional[FileRecord] = None
    tags: list[str] = field(default_factory=list)

    def child_directory(self, name: str, path: str) -> "TreeNode":
        for child in self.children:
            if child.is_directory and child.name == name:
                return child
        node = TreeNode(name=name, path=path, is_directory=True)
        self.children.append(node)
        return node

    def directory_count(self) -> int:
        return sum(1 + child.directory_count() for child in self.children if child.is_directory)


def build_tree(
    records: Iterable[FileRecord],
    tags: Optional[Mapping[str, Sequence[str]]] = None,
) -> TreeNode:
    """Arrange flat records into a nested tree.

    Args:
        records: Files to place in the tree.
        tags: Tags per path; defaults to the tags carried by each record.

    Returns:
        TreeNode: Unnamed root whose children are sorted directories first,
        then files, each group alphabetically without regard to case.
    """
    root = TreeNode(name="", path="", is_directory=True)
    for record in sorted(records, key=lambda item: item.path):
        segments = record.path.split("/")
        node = root
        for index, segment in enumerate(segments[:-1]):
            node = node.child_directory(segment, "/".join(segments[: index + 1]))
        file_tags = list(tags.get(record.path, ())) if tags is not None else list(record.tags)
        node.children.append(
            TreeNode(
                name=segments[-1],
                path=record.path,
                is_directory=False,
                record=record,
                tags=file_tags,
            )
        )
    _sort(root)
    return root


def render_xml_tree(tree: TreeNode) -> str:
    """Render ``tree`` as a ``<directoryTree>`` element."""
    lines = ["<directoryTree>"]
    for child in tree.children:
        _xml_node(child, 1, lines)
    lines.append("</directoryTree>")
    return "\n".join(lines)


def render_ascii_tree(tree: TreeNode, total_files: int, project_name: Optional[str] = None) -> str:
    """Render ``tree`` with box-drawing connectors and a closing summary line."""
    lines: list[str] = []
    if project_name:
        lines.append(f"{project_name}/")
    _ascii_children(tree, "", lines)
    lines.append("")
    lines.append(f"{total_files} files, {tree.directory_count()} directories")
    return "\n".join(lines)


def _sort(node: TreeNode) -> None:
    node.children.sort(
        key=lambda child: (not child.is_directory, child.name.casefold(), child.name)
    )
    for child in node.children:
        if child.is_directory:
            _sort(child)


def _xml_node(node: TreeNode, depth: int, lines: list[str]) -> None:
    indent = "  " * depth
    if node.is_directory:
        lines.append(f"{indent}<directory name={quoteattr(node.name)} path={quoteattr(node.path)}>")
        for child in node.children:
            _xml_node(child, depth + 1, lines)
        lines.append(f"{indent}</directory>")
        return

    record = node.record
    size = record.size if record else 0
    modified = record.last_modified.isoformat() if record else ""
    lines.append(
        f"{indent}<file name={quoteattr(node.name)} path={quoteattr(node.path)} "
        f"size=\"{size}\" lastModified={quoteattr(modified)}>"
    )
    lines.append(f"{indent}  <tags>{escape(','.join(node.tags))}</tags>")
    lines.append(f"{indent}</file>")


def _ascii_children(node: TreeNode, prefix: str, lines: list[str]) -> None:
    for index, child in enumerate(node.children):
        last = index == len(node.children) - 1
        connector = "└── " if last else "├── "
        label = f"{child.name}/" if child.is_directory else child.name
        suffix = f" [{','.join(child.tags)}]" if child.tags else ""
        lines.append(f"{prefix}{connector}{label}{suffix}")
        if child.is_directory:
            _ascii_children(child, prefix + ("    " if last else "│   "), lines)


__all__ = ["TreeNode", "build_tree", "render_xml_tree", "render_ascii_tree"]
