"""
In-memory folder manager.

Keeps the per-file sync status the sync engine reports for each managed
folder and fans out change notifications to subscribers. Nothing here
computes sync state; statuses are recorded as they are reported.
"""

import os
import posixpath
import threading
from typing import Dict, Iterable, List, Optional

from loguru import logger

from syncshell.core.config import FolderConfig
from syncshell.domain.sync.provider import ChangeCallback, Unsubscribe
from syncshell.domain.sync.status import IN_SYNC, NEED_SYNC, NEW, STAT_ERROR


def normalize_relative_path(relative_path: str) -> str:
    """
    Normalize a folder-relative path to "/"-separated form.

    Leading separators are dropped so that both "/a/b" and "a/b" refer to
    the same entry. The folder root is ".".

    Args:
        relative_path: Path relative to a folder root

    Returns:
        Normalized relative path
    """
    rel = relative_path.replace(os.sep, "/").lstrip("/")
    return posixpath.normpath(rel) if rel else "."


class JournalFolder:
    """A managed folder backed by an in-memory status record."""

    def __init__(self, alias: str, path: str):
        """
        Initialize folder.

        Args:
            alias: Unique folder name
            path: Absolute path of the folder root
        """
        self.alias = alias
        self.path = os.path.normpath(os.path.abspath(os.path.expanduser(path)))
        self._lock = threading.Lock()
        self._entries: Dict[str, str] = {}

    def __repr__(self) -> str:
        return f"JournalFolder(alias={self.alias!r}, path={self.path!r})"

    def set_file_status(self, relative_path: str, status: str) -> None:
        """Record the status of a file or directory."""
        rel = normalize_relative_path(relative_path)
        with self._lock:
            self._entries[rel] = status

    def mark_dirty(self, relative_path: str) -> None:
        """Record that a path changed locally and needs sync."""
        self.set_file_status(relative_path, NEED_SYNC)

    def forget(self, relative_path: str) -> None:
        """Drop a path and everything recorded below it."""
        rel = normalize_relative_path(relative_path)
        prefix = rel + "/"
        with self._lock:
            for key in [k for k in self._entries if k == rel or k.startswith(prefix)]:
                del self._entries[key]

    def file_status(self, relative_path: str) -> str:
        """
        Get the sync status of a single file.

        Args:
            relative_path: Path relative to the folder root

        Returns:
            STAT_ERROR if the local file cannot be stat'ed, the recorded
            status if one exists, NEW otherwise
        """
        rel = normalize_relative_path(relative_path)
        try:
            os.stat(os.path.join(self.path, rel))
        except (OSError, ValueError) as e:
            # ValueError: embedded null byte
            logger.debug(f"Stat failed for {rel} in {self.alias}: {e}")
            return STAT_ERROR

        with self._lock:
            return self._entries.get(rel, NEW)

    def recursive_folder_status(self, relative_path: str) -> str:
        """
        Get the sync status of a whole subtree.

        Computed from the record only, so the walk is bounded by the number
        of recorded entries and cannot follow symlink cycles.

        Args:
            relative_path: Directory path relative to the folder root

        Returns:
            IN_SYNC if every recorded entry at or below the path is in sync,
            the first other status found otherwise, NEW if nothing is recorded
        """
        rel = normalize_relative_path(relative_path)
        prefix = "" if rel == "." else rel + "/"

        with self._lock:
            statuses = [
                status
                for key, status in self._entries.items()
                if key == rel or key.startswith(prefix)
            ]

        if not statuses:
            return NEW
        for status in statuses:
            if status != IN_SYNC:
                return status
        return IN_SYNC

    def relative_path(self, path: str) -> str:
        """Convert an absolute path inside this folder to a relative one."""
        return normalize_relative_path(os.path.relpath(path, self.path))


class FolderManager:
    """Registry of managed folders and publisher of sync state changes.

    Thread-safe: the sync engine reports from its own threads while the
    command server queries from connection threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._folders: Dict[str, JournalFolder] = {}
        self._subscribers: List[ChangeCallback] = []

    @classmethod
    def from_config(cls, folders: Iterable[FolderConfig]) -> "FolderManager":
        """Create a manager with the folders listed in the configuration."""
        manager = cls()
        for folder_config in folders:
            manager.add_folder(folder_config.alias, folder_config.path)
        return manager

    def add_folder(self, alias: str, path: str) -> JournalFolder:
        """
        Start managing a folder.

        Raises:
            ValueError: If the alias is already in use
        """
        folder = JournalFolder(alias, path)
        with self._lock:
            if alias in self._folders:
                raise ValueError(f"Folder alias already in use: {alias}")
            self._folders[alias] = folder
        logger.info(f"Managing folder {alias} at {folder.path}")
        return folder

    def remove_folder(self, alias: str) -> None:
        with self._lock:
            self._folders.pop(alias, None)

    def folder(self, alias: str) -> Optional[JournalFolder]:
        with self._lock:
            return self._folders.get(alias)

    def folders(self) -> List[JournalFolder]:
        with self._lock:
            return list(self._folders.values())

    def folder_for_path(self, path: str) -> Optional[JournalFolder]:
        """
        Find the managed folder owning a path.

        Matches whole path components only, so /sync/root does not own
        /sync/rootless. With nested folders the deepest root wins.

        Args:
            path: Absolute filesystem path

        Returns:
            Owning folder, or None if the path is not managed
        """
        if not path:
            return None
        abs_path = os.path.normpath(os.path.abspath(path))

        best: Optional[JournalFolder] = None
        for folder in self.folders():
            root = folder.path
            if abs_path == root or abs_path.startswith(root.rstrip(os.sep) + os.sep):
                if best is None or len(root) > len(best.path):
                    best = folder
        return best

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """Register a sync state change callback."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def notify_sync_state_changed(self, alias: str) -> None:
        """
        Tell all subscribers that a folder's sync state changed.

        A subscriber that raises is logged and skipped; the others are
        still notified.
        """
        with self._lock:
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(alias)
            except Exception:
                logger.exception(f"Sync state change subscriber failed for {alias}")

    def report_file_status(self, path: str, status: str) -> bool:
        """
        Record the status of an absolute path and notify subscribers.

        Returns:
            True if the path belongs to a managed folder
        """
        folder = self.folder_for_path(path)
        if folder is None:
            return False
        folder.set_file_status(folder.relative_path(path), status)
        self.notify_sync_state_changed(folder.alias)
        return True
