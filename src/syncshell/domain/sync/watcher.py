"""
Local file watching for managed folders.

Marks files that change on disk as needing sync and notifies subscribers
so shell integration clients refresh their overlays.
"""

import os
import threading
import time
from typing import Dict, List, Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from syncshell.domain.sync.folders import FolderManager, JournalFolder


def is_hidden(relative_path: str) -> bool:
    """True if any component of a folder-relative path is a dot-file."""
    return any(part.startswith(".") and part not in (".", "..")
               for part in relative_path.split("/"))


class FolderChangeHandler(FileSystemEventHandler):
    """Handles file system events for one managed folder with debouncing."""

    def __init__(self, folder: JournalFolder, debounce_ms: int = 250):
        """
        Initialize folder change handler.

        Args:
            folder: Folder whose record is updated
            debounce_ms: Milliseconds to wait after last change before notifying
        """
        self.folder = folder
        self.debounce_seconds = debounce_ms / 1000.0
        self._lock = threading.Lock()
        self._last_change: Optional[float] = None

    def _relative(self, raw_path) -> Optional[str]:
        rel = self.folder.relative_path(os.fsdecode(raw_path))
        if rel.startswith("..") or is_hidden(rel):
            return None
        return rel

    def _touch(self) -> None:
        with self._lock:
            self._last_change = time.monotonic()

    def on_created(self, event: FileSystemEvent) -> None:
        rel = self._relative(event.src_path)
        if rel is None:
            return
        self.folder.mark_dirty(rel)
        self._touch()

    def on_modified(self, event: FileSystemEvent) -> None:
        # Directory mtime changes are reported for every child change
        if event.is_directory:
            return
        rel = self._relative(event.src_path)
        if rel is None:
            return
        self.folder.mark_dirty(rel)
        self._touch()

    def on_deleted(self, event: FileSystemEvent) -> None:
        rel = self._relative(event.src_path)
        if rel is None:
            return
        self.folder.forget(rel)
        self._touch()

    def on_moved(self, event: FileSystemEvent) -> None:
        src = self._relative(event.src_path)
        dest = self._relative(event.dest_path)
        if src is not None:
            self.folder.forget(src)
        if dest is not None:
            self.folder.mark_dirty(dest)
        if src is not None or dest is not None:
            self._touch()

    def check_pending_change(self) -> bool:
        """Check whether a debounced change is ready to be announced.

        Returns:
            True once per burst of events, after the debounce interval
        """
        with self._lock:
            if self._last_change is None:
                return False
            if time.monotonic() - self._last_change < self.debounce_seconds:
                return False
            self._last_change = None
            return True


class FolderWatcher:
    """Watches every managed folder and publishes local changes."""

    def __init__(self, manager: FolderManager, debounce_ms: int = 250):
        self.manager = manager
        self.debounce_ms = debounce_ms
        self.observer: Optional[Observer] = None
        self.handlers: Dict[str, FolderChangeHandler] = {}

    def start(self) -> None:
        """Schedule an observer watch for each folder and start watching."""
        observer = Observer()
        for folder in self.manager.folders():
            if not os.path.isdir(folder.path):
                logger.warning(f"Not watching {folder.alias}: {folder.path} is not a directory")
                continue
            handler = FolderChangeHandler(folder, debounce_ms=self.debounce_ms)
            observer.schedule(handler, folder.path, recursive=True)
            self.handlers[folder.alias] = handler
            logger.debug(f"Watching {folder.path}")
        observer.start()
        self.observer = observer

    def poll(self) -> List[str]:
        """
        Announce debounced changes to subscribers.

        Returns:
            Aliases of folders that were announced
        """
        changed = [
            alias for alias, handler in self.handlers.items()
            if handler.check_pending_change()
        ]
        for alias in changed:
            self.manager.notify_sync_state_changed(alias)
        return changed

    def stop(self) -> None:
        """Stop and cleanup the observer."""
        if self.observer is None:
            return
        self.observer.stop()
        self.observer.join(timeout=1.0)
        self.observer = None
