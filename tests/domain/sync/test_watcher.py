"""Tests for local file watching."""

import time

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from conftest import wait_for
from syncshell.domain.sync.folders import FolderManager
from syncshell.domain.sync.status import IN_SYNC, NEED_SYNC, NEW
from syncshell.domain.sync.watcher import FolderChangeHandler, FolderWatcher, is_hidden


@pytest.fixture
def manager(tmp_path):
    manager = FolderManager()
    manager.add_folder("docs", str(tmp_path))
    return manager


@pytest.fixture
def handler(manager):
    return FolderChangeHandler(manager.folder("docs"), debounce_ms=0)


@pytest.mark.parametrize(
    "path, hidden",
    [
        ("a.txt", False),
        (".", False),
        (".sync_journal.db", True),
        ("sub/.git/config", True),
        ("sub/file.txt", False),
    ],
)
def test_is_hidden(path, hidden):
    assert is_hidden(path) is hidden


class TestFolderChangeHandler:
    """Tests for event handling."""

    def test_created_marks_dirty(self, handler, tmp_path):
        handler.on_created(FileCreatedEvent(str(tmp_path / "a.txt")))
        assert handler.folder.recursive_folder_status("a.txt") == NEED_SYNC
        assert handler.check_pending_change()

    def test_modified_marks_dirty(self, handler, tmp_path):
        handler.folder.set_file_status("a.txt", IN_SYNC)
        handler.on_modified(FileModifiedEvent(str(tmp_path / "a.txt")))
        assert handler.folder.recursive_folder_status("a.txt") == NEED_SYNC

    def test_directory_modified_is_ignored(self, handler, tmp_path):
        handler.on_modified(DirModifiedEvent(str(tmp_path / "sub")))
        assert not handler.check_pending_change()

    def test_deleted_forgets(self, handler, tmp_path):
        handler.folder.set_file_status("sub/a.txt", IN_SYNC)
        handler.on_deleted(FileDeletedEvent(str(tmp_path / "sub")))
        assert handler.folder.recursive_folder_status("sub") == NEW

    def test_moved(self, handler, tmp_path):
        handler.folder.set_file_status("old.txt", IN_SYNC)
        handler.on_moved(FileMovedEvent(str(tmp_path / "old.txt"), str(tmp_path / "new.txt")))
        assert handler.folder.recursive_folder_status("old.txt") == NEW
        assert handler.folder.recursive_folder_status("new.txt") == NEED_SYNC

    def test_hidden_paths_are_ignored(self, handler, tmp_path):
        handler.on_created(FileCreatedEvent(str(tmp_path / ".journal.db")))
        assert handler.folder.recursive_folder_status(".journal.db") == NEW
        assert not handler.check_pending_change()

    def test_paths_outside_folder_are_ignored(self, handler, tmp_path):
        handler.on_created(FileCreatedEvent(str(tmp_path.parent / "elsewhere.txt")))
        assert not handler.check_pending_change()

    def test_debounce(self, manager, tmp_path):
        """A burst of events is announced once, after the quiet period."""
        handler = FolderChangeHandler(manager.folder("docs"), debounce_ms=100)
        handler.on_created(FileCreatedEvent(str(tmp_path / "a.txt")))
        handler.on_created(FileCreatedEvent(str(tmp_path / "b.txt")))
        assert not handler.check_pending_change()

        time.sleep(0.15)
        assert handler.check_pending_change()
        assert not handler.check_pending_change()


class TestFolderWatcher:
    """Tests for the observer wrapper."""

    def test_poll_announces_changes(self, manager):
        received = []
        manager.subscribe(received.append)
        watcher = FolderWatcher(manager)
        watcher.handlers["docs"] = FolderChangeHandler(manager.folder("docs"), debounce_ms=0)
        watcher.handlers["docs"].on_created(
            FileCreatedEvent(manager.folder("docs").path + "/a.txt")
        )

        assert watcher.poll() == ["docs"]
        assert watcher.poll() == []
        assert received == ["docs"]

    def test_missing_directory_is_skipped(self, tmp_path):
        manager = FolderManager()
        manager.add_folder("gone", str(tmp_path / "gone"))
        watcher = FolderWatcher(manager)
        watcher.start()
        try:
            assert watcher.handlers == {}
        finally:
            watcher.stop()

    def test_real_file_change_is_announced(self, manager, tmp_path):
        received = []
        manager.subscribe(received.append)
        watcher = FolderWatcher(manager, debounce_ms=50)
        watcher.start()
        try:
            (tmp_path / "new.txt").write_text("hello")

            def announced():
                watcher.poll()
                return received == ["docs"]

            assert wait_for(announced, timeout=5.0)
            assert manager.folder("docs").recursive_folder_status("new.txt") == NEED_SYNC
        finally:
            watcher.stop()

    def test_stop_without_start(self, manager):
        FolderWatcher(manager).stop()
