"""Filesystem port used by the snippet store, and safe content path resolution."""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Protocol

log = logging.getLogger(__name__)

# Snippet ids become file names: one safe path segment, no traversal
_SAFE_ID = re.compile(r"^[a-zA-Z0-9_\-]+$")


class StorageError(RuntimeError):
    """A relation or content file could not be read or written. Not recoverable by the store."""


class FileSystem(Protocol):
    """Whole-file operations. Absence of a file is reported, never raised."""

    def read(self, path: Path) -> Optional[bytes]:
        """Return file content, or None if the file does not exist."""

    def write(self, path: Path, data: bytes) -> None:
        """Replace the file with data. Readers see either the old or the new content."""

    def remove(self, path: Path) -> bool:
        """Remove the file. Returns False if it did not exist."""

    def make_dirs(self, path: Path) -> None:
        """Create directory (and parents) if absent."""


class LocalFileSystem:
    """FileSystem on the local disk."""

    def read(self, path: Path) -> Optional[bytes]:
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    def write(self, path: Path, data: bytes) -> None:
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_bytes(data)
        os.replace(tmp, path)

    def remove(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def make_dirs(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)


def is_safe_id(snippet_id: str) -> bool:
    """True if snippet_id can be used as a file name under the content directory."""
    return bool(_SAFE_ID.match(snippet_id))


def resolve_content_path(content_dir: Path, snippet_id: str) -> Path:
    """Path of the content file for snippet_id. Raises ValueError for ids that are not a safe segment."""
    if not is_safe_id(snippet_id):
        raise ValueError(f"Unsafe snippet id: {snippet_id!r}")
    return content_dir / snippet_id
