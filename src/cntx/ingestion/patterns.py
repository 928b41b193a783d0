"""Glob-style ignore/include pattern matching for project-relative paths.

All comparisons are case-insensitive. Patterns support ``**`` (any sequence,
including ``/``), ``*`` (any sequence within one segment), ``?`` (one
character) and ``[...]`` character classes; every other character is literal.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable

LOGGER = logging.getLogger(__name__)

ALWAYS_IGNORED: frozenset[str] = frozenset({".git", ".svn", ".hg", "node_modules", ".cntx"})


def normalize_path(value: str) -> str:
    """Return ``value`` with forward slashes and no leading ``./`` or trailing ``/``."""
    normalized = value.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/") if normalized != "/" else normalized


def matches(path: str, pattern: str) -> bool:
    """Return whether ``path`` matches the glob ``pattern``.

    Args:
        path: Project-relative path using forward slashes.
        pattern: Glob pattern.

    Returns:
        bool: True when the pattern selects the path. Invalid patterns never match.
    """
    path = normalize_path(path)
    pattern = normalize_path(pattern)
    if pattern == "**/*":
        return True
    if pattern == "*":
        return "/" not in path
    if path.casefold() == pattern.casefold():
        return True

    compiled = _compile(pattern)
    if compiled is not None and compiled.fullmatch(path):
        return True

    if pattern.startswith("*.") and "/" not in pattern:
        return path.casefold().endswith(pattern[1:].casefold())
    return False


def matches_directory(path: str, pattern: str) -> bool:
    """Return whether a directory ``path`` is selected by ``pattern`` at any depth."""
    if matches(path, pattern):
        return True
    folded = normalize_path(path).casefold()
    needle = normalize_path(pattern).casefold()
    if not needle:
        return False
    return (
        folded == needle
        or folded.startswith(f"{needle}/")
        or folded.endswith(f"/{needle}")
        or f"/{needle}/" in folded
    )


def is_ignored(path: str, patterns: Iterable[str], *, is_directory: bool = False) -> bool:
    """Return whether any of ``patterns`` excludes ``path``.

    Directories use :func:`matches_directory`. Files are tested with
    :func:`matches`, against their basename for slash-free patterns, and through
    their parent directory so flat path lists honour directory patterns.
    """
    path = normalize_path(path)
    parent, _, name = path.rpartition("/")
    for pattern in patterns:
        if is_directory:
            if matches_directory(path, pattern):
                return True
            continue
        if matches(path, pattern):
            return True
        if parent and "/" not in normalize_path(pattern) and matches(name, pattern):
            return True
        if parent and matches_directory(parent, pattern):
            return True
    return False


def is_always_ignored(path: str) -> bool:
    """Return whether any segment of ``path`` is in :data:`ALWAYS_IGNORED`."""
    return any(segment in ALWAYS_IGNORED for segment in normalize_path(path).split("/"))


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(_translate(pattern), re.IGNORECASE)
    except re.error as exc:
        LOGGER.warning("Ignoring invalid pattern %r: %s", pattern, exc)
        return None


def _translate(pattern: str) -> str:
    parts: list[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if pattern.startswith("**", index):
                parts.append(".*")
                index += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append(".")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                # Unterminated class; handed to re.compile so the error is reported.
                parts.append(pattern[index:])
                break
            body = pattern[index + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            parts.append(f"[{body}]")
            index = end + 1
            continue
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


__all__ = [
    "ALWAYS_IGNORED",
    "normalize_path",
    "matches",
    "matches_directory",
    "is_ignored",
    "is_always_ignored",
]
