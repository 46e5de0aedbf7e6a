"""IPC (Inter-Process Communication) for syncshell.

Local socket server answering sync status queries from shell integration
clients, and a small client for talking to it.
"""

from .client import iter_updates, parse_status, send_command
from .errors import BindError, ConnectionClosedError, SocketApiError
from .server import Listener, SocketApi

__all__ = [
    "BindError",
    "ConnectionClosedError",
    "Listener",
    "SocketApi",
    "SocketApiError",
    "iter_updates",
    "parse_status",
    "send_command",
]
