"""
Status provider interface.

Defines the contract the command server consumes from the sync engine.
The server never reaches for a folder manager on its own; it is handed
an object satisfying StatusProvider when it is constructed.
"""

from typing import Callable, Optional, Protocol

# Receives the alias of the folder whose sync state changed
ChangeCallback = Callable[[str], None]
Unsubscribe = Callable[[], None]


class Folder(Protocol):
    """A managed sync folder.

    Relative paths passed to the status methods are relative to `path`,
    using "/" as separator. The folder root itself is ".".
    """

    alias: str
    path: str

    def file_status(self, relative_path: str) -> str:
        """Return the SyncFileStatus of a single file."""
        ...

    def recursive_folder_status(self, relative_path: str) -> str:
        """Return IN_SYNC only if the whole subtree is in sync."""
        ...


class StatusProvider(Protocol):
    """Protocol defining what the command server needs from the sync engine."""

    def folder_for_path(self, path: str) -> Optional[Folder]:
        """Return the managed folder owning `path`, or None."""
        ...

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """Register a callback fired on every sync state change.

        Returns:
            Function that removes the callback again
        """
        ...
