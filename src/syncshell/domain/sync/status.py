"""
Sync status values.

Two vocabularies meet here: the per-file status reported by the sync
engine (SyncFileStatus) and the reduced status code sent to shell
integration clients over the socket (StatusCode).
"""

from typing import Literal

# Per-file status as reported by a managed folder.
# JournalFolder produces STAT_ERROR and NEW itself; IN_SYNC, NEED_SYNC and
# IGNORE (excluded by the sync engine's ignore rules) arrive through
# FolderManager.report_file_status().
IN_SYNC = "IN_SYNC"
NEED_SYNC = "NEED_SYNC"
STAT_ERROR = "STAT_ERROR"
NEW = "NEW"
IGNORE = "IGNORE"

SyncFileStatus = Literal["IN_SYNC", "NEED_SYNC", "STAT_ERROR", "NEW", "IGNORE"]

# Wire status codes
STATUS_OK = "OK"
STATUS_NEED_SYNC = "NEED_SYNC"
STATUS_NOP = "NOP"

StatusCode = Literal["OK", "NEED_SYNC", "NOP"]


def to_status_code(file_status: str) -> StatusCode:
    """Reduce a file status to the wire status code.

    Anything that is not IN_SYNC, STAT_ERROR included, is NEED_SYNC.

    Args:
        file_status: Status reported by a managed folder

    Returns:
        "OK" or "NEED_SYNC"
    """
    if file_status == IN_SYNC:
        return STATUS_OK
    return STATUS_NEED_SYNC
