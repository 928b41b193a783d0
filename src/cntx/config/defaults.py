"""Default ignore patterns and tag catalog written on project initialization."""

from __future__ import annotations

from .models import TagDefinition

DEFAULT_IGNORE_PATTERNS: list[str] = [
    # Directories
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    ".next",
    ".cache",
    ".netlify",
    "__pycache__",
    ".venv",
    # Package files
    "package-lock.json",
    "yarn.lock",
    # System files
    ".DS_Store",
    "Thumbs.db",
    # Media files
    "*.mp3",
    "*.mp4",
    "*.wav",
    "*.ogg",
    "*.m4a",
    "*.flac",
    "*.jpg",
    "*.jpeg",
    "*.png",
    "*.gif",
    "*.webp",
    "*.svg",
    "*.ico",
    # Documents and archives
    "*.pdf",
    "*.doc",
    "*.docx",
    "*.zip",
    "*.tar",
    "*.gz",
    "*.rar",
]

DEFAULT_TAGS: dict[str, TagDefinition] = {
    tag.name: tag
    for tag in (
        TagDefinition(
            name="application",
            color="#0ea5e9",
            description="Main application code and logic",
        ),
        TagDefinition(
            name="infrastructure",
            color="#f97316",
            description="Deployment, CI/CD, infrastructure-as-code",
        ),
        TagDefinition(
            name="configuration",
            color="#94a3b8",
            description="Build, tooling, and environment configuration",
        ),
        TagDefinition(
            name="documentation",
            color="#8b5cf6",
            description="Documentation, markdown files, and comments",
        ),
        TagDefinition(
            name="testing",
            color="#22c55e",
            description="Unit tests, integration tests, and mocks",
        ),
        TagDefinition(
            name="assets",
            color="#78716c",
            description="Static files, images, media, and fonts",
        ),
        TagDefinition(
            name="libraries",
            color="#ec4899",
            description="Shared utilities, helper functions, and internal packages",
        ),
        TagDefinition(
            name="types",
            color="#6366f1",
            description="Type definitions and interfaces",
        ),
    )
}


__all__ = ["DEFAULT_IGNORE_PATTERNS", "DEFAULT_TAGS"]
