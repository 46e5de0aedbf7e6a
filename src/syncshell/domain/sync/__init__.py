"""
Sync domain - the status provider side of the shell integration.

Status values, the provider protocol consumed by the command server,
and an in-memory folder manager that records what the sync engine reports.
"""

from .folders import FolderManager, JournalFolder, normalize_relative_path
from .provider import Folder, StatusProvider
from .status import (
    IGNORE,
    IN_SYNC,
    NEED_SYNC,
    NEW,
    STAT_ERROR,
    STATUS_NEED_SYNC,
    STATUS_NOP,
    STATUS_OK,
    to_status_code,
)

__all__ = [
    "Folder",
    "FolderManager",
    "JournalFolder",
    "StatusProvider",
    "normalize_relative_path",
    "to_status_code",
    "IGNORE",
    "IN_SYNC",
    "NEED_SYNC",
    "NEW",
    "STAT_ERROR",
    "STATUS_NEED_SYNC",
    "STATUS_NOP",
    "STATUS_OK",
]
