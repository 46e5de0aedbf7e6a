"""Status query commands.

Both commands answer with a single `STATUS:<code>:<path>` line written to
the connection that asked.
"""

import os
from typing import List, Tuple

from loguru import logger

from syncshell.domain.sync.provider import Folder, StatusProvider
from syncshell.domain.sync.status import (
    IN_SYNC,
    STAT_ERROR,
    STATUS_NEED_SYNC,
    STATUS_NOP,
    STATUS_OK,
    to_status_code,
)
from syncshell.ipc.commands import CommandRegistry, Handler
from syncshell.ipc.connections import Connection
from syncshell.ipc.errors import ConnectionClosedError
from syncshell.ipc.protocol import (
    RETRIEVE_FILE_STATUS,
    RETRIEVE_FOLDER_STATUS,
    format_status,
)


def relative_to_folder(folder: Folder, path: str) -> str:
    """Path of `path` relative to the folder root, "/"-separated."""
    rel = os.path.relpath(os.path.abspath(path), folder.path)
    return rel.replace(os.sep, "/")


def list_directory(path: str) -> Tuple[List[str], List[str]]:
    """
    List the direct entries of a directory, hidden entries excluded.

    Symlinks are followed; broken symlinks are neither files nor
    directories and are skipped.

    Args:
        path: Directory to list

    Returns:
        (file paths, directory paths), each sorted by name

    Raises:
        OSError: If the directory cannot be listed
        ValueError: If the path contains a null byte
    """
    files = []
    dirs = []
    with os.scandir(path) as it:
        for entry in it:
            if entry.name.startswith("."):
                continue
            try:
                if entry.is_dir():
                    dirs.append(entry.path)
                elif entry.is_file():
                    files.append(entry.path)
            except OSError:
                # Entry vanished while listing
                continue
    return sorted(files), sorted(dirs)


class StatusCommandHandlers:
    """Handlers for RETRIEVE_FOLDER_STATUS and RETRIEVE_FILE_STATUS."""

    def __init__(self, provider: StatusProvider):
        self.provider = provider

    def commands(self) -> List[Tuple[str, Handler]]:
        """(command name, handler) pairs for the command table."""
        return [
            (RETRIEVE_FOLDER_STATUS, self.retrieve_folder_status),
            (RETRIEVE_FILE_STATUS, self.retrieve_file_status),
        ]

    def retrieve_folder_status(self, argument: str, connection: Connection) -> None:
        """Answer whether everything inside a directory is in sync."""
        if not connection.is_valid:
            logger.debug("No valid connection for folder status")
            return

        folder = self.provider.folder_for_path(argument)
        if folder is None:
            # Offline or not a managed folder: nothing to worry about
            logger.debug(f"Folder offline or not watched: {argument}")
            code = STATUS_NOP
        else:
            code = self.folder_status(folder, argument)

        self._reply(connection, code, argument)

    def retrieve_file_status(self, argument: str, connection: Connection) -> None:
        """Answer whether a single file is in sync."""
        if not connection.is_valid:
            logger.debug("No valid connection for file status")
            return

        folder = self.provider.folder_for_path(argument)
        if folder is None:
            logger.debug(f"Folder offline or not watched: {argument}")
            code = STATUS_NOP
        else:
            file_status = folder.file_status(relative_to_folder(folder, argument))
            if file_status == STAT_ERROR:
                logger.warning(f"File status is STAT_ERROR for {argument}")
            elif file_status != IN_SYNC:
                logger.debug(f"File status for {argument} is {file_status}")
            code = to_status_code(file_status)

        self._reply(connection, code, argument)

    def folder_status(self, folder: Folder, path: str) -> str:
        """
        Compute the wire status of a directory inside a managed folder.

        Direct files are checked first, then the subtrees of direct
        subdirectories. The first entry out of sync decides.

        Args:
            folder: Folder owning `path`
            path: Directory to check

        Returns:
            "OK" or "NEED_SYNC"
        """
        try:
            files, dirs = list_directory(path)
        except (OSError, ValueError) as e:
            logger.warning(f"Cannot list {path}: {e}")
            return STATUS_NEED_SYNC

        for file_path in files:
            file_status = folder.file_status(relative_to_folder(folder, file_path))
            if file_status == STAT_ERROR:
                logger.warning(f"File status is STAT_ERROR for {file_path}")
            if file_status != IN_SYNC:
                logger.debug(f"File status for {file_path} is {file_status}")
                return STATUS_NEED_SYNC

        for dir_path in dirs:
            subtree_status = folder.recursive_folder_status(
                relative_to_folder(folder, dir_path)
            )
            if subtree_status != IN_SYNC:
                logger.debug(f"Subtree status for {dir_path} is {subtree_status}")
                return STATUS_NEED_SYNC

        return STATUS_OK

    def _reply(self, connection: Connection, code: str, path: str) -> None:
        try:
            connection.send(format_status(code, path))
        except ConnectionClosedError as e:
            # Client left between dispatch and reply
            logger.debug(str(e))


def build_command_registry(provider: StatusProvider) -> CommandRegistry:
    """Create the command table served by the socket API."""
    return CommandRegistry(StatusCommandHandlers(provider).commands())
