"""Shared fixtures and fakes for syncshell tests.

FakeProvider stands in for the sync engine: it resolves paths by prefix
and reports whatever statuses a test put into its folders.
"""

import os
import socket
import tempfile
import time
from typing import Callable, Dict, List, Optional

import pytest

from syncshell.domain.sync.status import IN_SYNC
from syncshell.ipc.connections import Connection


class FakeFolder:
    """Folder with canned statuses; records every status query."""

    def __init__(self, path: str, alias: str = "fake", default: str = IN_SYNC):
        self.alias = alias
        self.path = os.path.normpath(path)
        self.default = default
        self.file_statuses: Dict[str, str] = {}
        self.subtree_statuses: Dict[str, str] = {}
        self.file_calls: List[str] = []
        self.subtree_calls: List[str] = []

    def file_status(self, relative_path: str) -> str:
        self.file_calls.append(relative_path)
        return self.file_statuses.get(relative_path, self.default)

    def recursive_folder_status(self, relative_path: str) -> str:
        self.subtree_calls.append(relative_path)
        return self.subtree_statuses.get(relative_path, self.default)


class FakeProvider:
    """StatusProvider over a fixed list of FakeFolders."""

    def __init__(self, folders: Optional[List[FakeFolder]] = None):
        self.folders = list(folders or [])
        self.subscribers: List[Callable[[str], None]] = []
        self.lookups: List[str] = []

    def folder_for_path(self, path: str) -> Optional[FakeFolder]:
        self.lookups.append(path)
        for folder in self.folders:
            if path == folder.path or path.startswith(folder.path + os.sep):
                return folder
        return None

    def subscribe(self, callback: Callable[[str], None]):
        self.subscribers.append(callback)

        def unsubscribe() -> None:
            self.subscribers.remove(callback)

        return unsubscribe

    def emit(self, alias: str = "fake") -> None:
        for callback in list(self.subscribers):
            callback(alias)


def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll until predicate() is true or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def recv_lines(sock: socket.socket, count: int, timeout: float = 2.0) -> List[str]:
    """Read exactly `count` newline-terminated lines from a client socket."""
    sock.settimeout(timeout)
    data = b""
    while data.count(b"\n") < count:
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data.decode("utf-8").splitlines()[:count]


def assert_no_data(sock: socket.socket, wait: float = 0.2) -> None:
    """Assert nothing arrives on the socket within `wait` seconds."""
    sock.settimeout(wait)
    try:
        data = sock.recv(4096)
    except socket.timeout:
        return
    raise AssertionError(f"Unexpected data: {data!r}")


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Provider owning /sync/root with every file in sync."""
    return FakeProvider([FakeFolder("/sync/root")])


@pytest.fixture
def connection_pair():
    """A server-side Connection and the client socket talking to it."""
    server_sock, client_sock = socket.socketpair()
    connection = Connection(server_sock)
    yield connection, client_sock
    connection.close()
    client_sock.close()


@pytest.fixture
def socket_dir():
    """Short temporary directory for Unix socket files (path length is limited)."""
    with tempfile.TemporaryDirectory(prefix="ss-", dir="/tmp") as tmpdir:
        yield tmpdir
