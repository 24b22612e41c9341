"""Pytest configuration: set test env before any snipbin imports so settings use test values."""

import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

import pytest

# Set before snipbin.config is used so the limiter and static mount see test values
_tmp = tempfile.mkdtemp(prefix="snipbin_test_")
os.environ.setdefault("SNIPBIN_ROOT_PATH", _tmp)
os.environ.setdefault("SNIPBIN_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SNIPBIN_ASYNC_CONTENT_REMOVAL", "false")
os.environ.setdefault("SNIPBIN_STATIC_DIR", os.path.join(_tmp, "no-static"))
os.environ.setdefault("SNIPBIN_NETRC_PATH", os.path.join(_tmp, "netrc"))


class MemoryFileSystem:
    """In-memory FileSystem double. Counts writes per path; can be told to fail writes."""

    def __init__(self) -> None:
        self.files: Dict[Path, bytes] = {}
        self.dirs = set()
        self.writes: Dict[Path, int] = {}
        self.fail_writes = False
        self.fail_suffix = ""

    def read(self, path: Path) -> Optional[bytes]:
        return self.files.get(path)

    def write(self, path: Path, data: bytes) -> None:
        if self.fail_writes or (self.fail_suffix and path.name.endswith(self.fail_suffix)):
            raise OSError(28, "No space left on device")
        self.files[path] = data
        self.writes[path] = self.writes.get(path, 0) + 1

    def remove(self, path: Path) -> bool:
        return self.files.pop(path, None) is not None

    def make_dirs(self, path: Path) -> None:
        self.dirs.add(path)


STORE_ROOT = Path("/snips")


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Empty in-memory filesystem."""
    return MemoryFileSystem()


@pytest.fixture
def store(memory_fs):
    """SnippetStore on the in-memory filesystem, removing content files inline."""
    from snipbin.snippets.store import SnippetStore

    return SnippetStore(STORE_ROOT, memory_fs, async_removal=False)
