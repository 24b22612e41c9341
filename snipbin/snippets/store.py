"""Persistent snippet store: deduplicated content, optional ownership, flat-file relations.

Three relations are kept in memory and rewritten in full on every change:
index (id -> content hash), owners (id -> owner) and passwords (id -> owner
password, compared verbatim). Content lives in one file per id under the
content directory. All public methods are safe to call from any thread.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from snipbin.config import Settings
from snipbin.snippets.hasher import content_hash
from snipbin.snippets.ids import IdGenerator
from snipbin.snippets.persistence import (
    FileSystem,
    LocalFileSystem,
    StorageError,
    is_safe_id,
    resolve_content_path,
)
from snipbin.snippets.relations import format_relation, parse_relation
from snipbin.snippets.rwlock import ReadWriteLock

log = logging.getLogger(__name__)


class SnippetStore:
    """CRUD over snippets with owner/password checks on update and delete.

    Empty owner/username means an unauthenticated caller. A snippet without an
    owner may be changed or deleted by anyone; an owned snippet only by its
    owner presenting the stored password.
    """

    def __init__(
        self,
        root_path: Path,
        fs: Optional[FileSystem] = None,
        *,
        content_dir_name: str = "data",
        index_file_name: str = "index.txt",
        owners_file_name: str = "owners.txt",
        passwords_file_name: str = "passwords.txt",
        id_generator: Optional[IdGenerator] = None,
        async_removal: bool = True,
    ) -> None:
        self._fs = fs or LocalFileSystem()
        self._ids = id_generator or IdGenerator()
        self._async_removal = async_removal
        self._lock = ReadWriteLock()
        self._content_dir = root_path / content_dir_name
        self._index_path = root_path / index_file_name
        self._owners_path = root_path / owners_file_name
        self._passwords_path = root_path / passwords_file_name
        try:
            self._fs.make_dirs(self._content_dir)
        except OSError as e:
            raise StorageError(f"Unable to create content directory {self._content_dir}: {e}") from e
        self._index = self._load(self._index_path)
        self._owners = self._load(self._owners_path)
        self._passwords = self._load(self._passwords_path)
        log.info(
            "Loaded %d snippets (%d owned) from %s",
            len(self._index),
            len(self._owners),
            root_path,
        )

    @classmethod
    def from_settings(cls, settings: Settings, fs: Optional[FileSystem] = None) -> "SnippetStore":
        """Build a store laid out as configured."""
        return cls(
            settings.root_path,
            fs,
            content_dir_name=settings.content_dir_name,
            index_file_name=settings.index_file_name,
            owners_file_name=settings.owners_file_name,
            passwords_file_name=settings.passwords_file_name,
            async_removal=settings.async_content_removal,
        )

    def _load(self, path: Path) -> Dict[str, str]:
        """Read a relation file; a missing file is an empty relation."""
        try:
            data = self._fs.read(path)
        except OSError as e:
            raise StorageError(f"Unable to read {path}: {e}") from e
        if data is None:
            return {}
        try:
            return parse_relation(data)
        except UnicodeDecodeError as e:
            raise StorageError(f"Corrupt relation file {path}: {e}") from e

    def _save(self, mapping: Dict[str, str], path: Path) -> None:
        try:
            self._fs.write(path, format_relation(mapping))
        except OSError as e:
            raise StorageError(f"Unable to write {path}: {e}") from e

    def _save_all(self) -> None:
        self._save(self._index, self._index_path)
        self._save(self._owners, self._owners_path)
        self._save(self._passwords, self._passwords_path)

    @contextmanager
    def _rollback_on_failure(self) -> Iterator[None]:
        """Undo in-memory relation changes (and rewrite the old files) if persisting raises StorageError."""
        saved = (dict(self._index), dict(self._owners), dict(self._passwords))
        try:
            yield
        except StorageError:
            self._index, self._owners, self._passwords = saved
            try:
                self._save_all()
            except StorageError as e:
                log.error("Could not restore relation files after failed write: %s", e)
            raise

    def _write_content(self, snippet_id: str, content: bytes) -> None:
        path = resolve_content_path(self._content_dir, snippet_id)
        try:
            self._fs.write(path, content)
        except OSError as e:
            raise StorageError(f"Unable to write snippet file {path}: {e}") from e

    def _read_content(self, snippet_id: str) -> Optional[bytes]:
        try:
            return self._fs.read(resolve_content_path(self._content_dir, snippet_id))
        except OSError as e:
            log.warning("Could not read snippet file for %s: %s", snippet_id, e)
            return None

    def _restore_content(self, snippet_id: str, content: bytes) -> None:
        """Put back content overwritten by a failed update. Best effort."""
        try:
            self._write_content(snippet_id, content)
        except StorageError as e:
            log.error("Could not restore content of %s: %s", snippet_id, e)

    def _discard_content(self, snippet_id: str) -> None:
        """Remove a content file whose relations were never persisted. Best effort."""
        try:
            self._fs.remove(resolve_content_path(self._content_dir, snippet_id))
        except OSError as e:
            log.warning("Could not remove orphaned snippet file for %s: %s", snippet_id, e)

    def _find_by_hash(self, digest: str) -> Optional[str]:
        for snippet_id, existing in self._index.items():
            if existing == digest:
                return snippet_id
        return None

    def _authorized(self, snippet_id: str, username: str, password: str) -> bool:
        """Ownership check for update/delete. Unowned snippets are open to everyone."""
        if snippet_id not in self._owners:
            return True
        if not username or username != self._owners[snippet_id]:
            return False
        return snippet_id not in self._passwords or self._passwords[snippet_id] == password

    def create(self, content: bytes, owner: str = "", password: str = "") -> str:
        """
        Store content and return its id. Content already stored returns the
        existing id; a non-empty owner then claims it if it is unowned or
        already theirs (same password).
        """
        digest = content_hash(content)
        with self._lock.write_locked():
            existing = self._find_by_hash(digest)
            if existing is not None:
                current_owner = self._owners.get(existing, "")
                if owner and (
                    not current_owner
                    or (current_owner == owner and self._passwords.get(existing, "") == password)
                ):
                    with self._rollback_on_failure():
                        self._owners[existing] = owner
                        self._passwords[existing] = password
                        self._save(self._owners, self._owners_path)
                        self._save(self._passwords, self._passwords_path)
                    log.info("Snippet %s claimed by %s", existing, owner)
                return existing

            snippet_id = self._ids.allocate(self._index)
            self._write_content(snippet_id, content)
            try:
                with self._rollback_on_failure():
                    self._index[snippet_id] = digest
                    if owner:
                        self._owners[snippet_id] = owner
                        self._passwords[snippet_id] = password
                    self._save_all()
            except StorageError:
                self._discard_content(snippet_id)
                raise
        log.info("Created snippet %s size=%d owner=%s", snippet_id, len(content), owner or "-")
        return snippet_id

    def get(self, snippet_id: str) -> Optional[bytes]:
        """Return content of snippet_id, or None if it is not stored or its file is unreadable."""
        with self._lock.read_locked():
            if snippet_id not in self._index or not is_safe_id(snippet_id):
                return None
            path = resolve_content_path(self._content_dir, snippet_id)
            try:
                data = self._fs.read(path)
            except OSError as e:
                log.warning("Could not read snippet file %s: %s", path, e)
                return None
            if data is None:
                log.warning("Index lists %s but its content file is missing", snippet_id)
            return data

    def exists(self, snippet_id: str) -> bool:
        """True if snippet_id is currently stored."""
        with self._lock.read_locked():
            return snippet_id in self._index

    def list_ids(self, owner: str = "", limit: int = 100) -> List[str]:
        """
        Ids owned by owner, or unowned ids when owner is empty. Oldest first,
        at most the last `limit` of them.
        """
        with self._lock.read_locked():
            if owner:
                ids = [i for i in self._index if self._owners.get(i) == owner]
            else:
                ids = [i for i in self._index if i not in self._owners]
        return ids[-limit:] if limit > 0 else []

    def update(self, snippet_id: str, content: bytes, username: str = "", password: str = "") -> bool:
        """
        Replace content of snippet_id. Returns False if it is not stored or the
        caller may not change it. A non-empty username becomes the new owner.
        """
        with self._lock.write_locked():
            if snippet_id not in self._index or not is_safe_id(snippet_id):
                return False
            if not self._authorized(snippet_id, username, password):
                log.warning("Update of %s refused for user=%s", snippet_id, username or "-")
                return False
            digest = content_hash(content)
            if digest == self._index[snippet_id]:
                return True
            previous = self._read_content(snippet_id)
            self._write_content(snippet_id, content)
            try:
                with self._rollback_on_failure():
                    self._index[snippet_id] = digest
                    if username:
                        self._owners[snippet_id] = username
                        self._passwords[snippet_id] = password
                    self._save_all()
            except StorageError:
                if previous is None:
                    self._discard_content(snippet_id)
                else:
                    self._restore_content(snippet_id, previous)
                raise
        log.info("Updated snippet %s size=%d user=%s", snippet_id, len(content), username or "-")
        return True

    def delete(self, snippet_id: str, username: str = "", password: str = "") -> bool:
        """
        Remove snippet_id. Returns False if it is not stored or the caller may
        not delete it. The content file is removed afterwards, best effort.
        """
        return self._delete(snippet_id, username, password, check_owner=True)

    def expire(self, snippet_id: str) -> bool:
        """Remove snippet_id regardless of owner (read limit reached). False if not stored."""
        return self._delete(snippet_id, "", "", check_owner=False)

    def _delete(self, snippet_id: str, username: str, password: str, check_owner: bool) -> bool:
        with self._lock.write_locked():
            if snippet_id not in self._index:
                return False
            if check_owner and not self._authorized(snippet_id, username, password):
                log.warning("Delete of %s refused for user=%s", snippet_id, username or "-")
                return False
            with self._rollback_on_failure():
                del self._index[snippet_id]
                self._owners.pop(snippet_id, None)
                self._passwords.pop(snippet_id, None)
                self._save_all()
        log.info("Deleted snippet %s user=%s", snippet_id, username or "-")
        if self._async_removal:
            threading.Thread(target=self._remove_content, args=(snippet_id,), daemon=True).start()
        else:
            self._remove_content(snippet_id)
        return True

    def _remove_content(self, snippet_id: str) -> None:
        """Remove the content file of a deleted snippet unless its id was reissued meanwhile."""
        if not is_safe_id(snippet_id):
            return
        path = resolve_content_path(self._content_dir, snippet_id)
        with self._lock.write_locked():
            if snippet_id in self._index:
                return
            try:
                if not self._fs.remove(path):
                    log.warning("Snippet file already gone: %s", path)
            except OSError as e:
                log.warning("Failed to remove snippet file %s: %s", path, e)
