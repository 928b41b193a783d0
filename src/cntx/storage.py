"""Atomic write helpers shared by the state store, config and bundle writers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str, *, encoding: str = "utf-8") -> None:
    """Write ``text`` to ``path`` so readers never observe a partial document.

    The payload goes to a temporary sibling first and is then moved over the
    destination with ``os.replace``.

    Args:
        path: Destination file.
        text: Full document contents.
        encoding: Text encoding for the written bytes.

    Raises:
        OSError: If the temporary file cannot be written or moved into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


__all__ = ["atomic_write_text"]
