"""Client connections and the registry that tracks them."""

import itertools
import socket
import threading
from typing import Callable, List, Optional

from loguru import logger

from syncshell.ipc.errors import ConnectionClosedError
from syncshell.ipc.protocol import LineBuffer, encode_message

_connection_ids = itertools.count(1)


class Connection:
    """One connected shell integration client.

    Writes are serialized per connection so a command response and a
    broadcast never interleave on the wire.
    """

    def __init__(self, sock: socket.socket, max_line_bytes: int = 64 * 1024):
        """
        Initialize connection.

        Args:
            sock: Accepted client socket
            max_line_bytes: Longest command line accepted from this client
        """
        self.id = next(_connection_ids)
        self.sock = sock
        self.buffer = LineBuffer(max_line_bytes)
        self._write_lock = threading.Lock()
        self._closed = threading.Event()

    def __repr__(self) -> str:
        return f"<Connection #{self.id}>"

    @property
    def is_valid(self) -> bool:
        """False once the client disconnected or the connection was closed."""
        return not self._closed.is_set()

    def send(self, message: str) -> None:
        """
        Send one message line to the client.

        Args:
            message: Message without trailing newline

        Raises:
            ConnectionClosedError: If the client is gone or stopped reading
        """
        if not self.is_valid:
            raise ConnectionClosedError(f"{self!r} is closed")

        logger.debug(f"Sending to {self!r}: {message}")
        data = encode_message(message)
        with self._write_lock:
            try:
                self.sock.sendall(data)
            except OSError as e:
                self._closed.set()
                raise ConnectionClosedError(f"Write to {self!r} failed: {e}") from e

    def recv(self, bufsize: int = 4096) -> Optional[bytes]:
        """
        Receive bytes from the client.

        Returns:
            Received bytes, b"" when the client closed the connection, or
            None when the read timed out with nothing to deliver
        """
        try:
            return self.sock.recv(bufsize)
        except socket.timeout:
            return None

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        self._closed.set()
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Already disconnected
            pass
        self.sock.close()


class ConnectionRegistry:
    """Thread-safe set of connected clients.

    This is the only shared mutable structure of the server: accept adds,
    disconnect removes, broadcast iterates.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._connections: List[Connection] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection: Connection) -> bool:
        with self._lock:
            return connection in self._connections

    def add(self, connection: Connection) -> None:
        with self._lock:
            if connection not in self._connections:
                self._connections.append(connection)

    def remove(self, connection: Connection) -> bool:
        """
        Remove a connection.

        Idempotent: disconnect and a failed broadcast write can both try
        to remove the same connection.

        Returns:
            True if the connection was registered
        """
        with self._lock:
            if connection in self._connections:
                self._connections.remove(connection)
                return True
        return False

    def snapshot(self) -> List[Connection]:
        """Copy of the currently registered connections."""
        with self._lock:
            return list(self._connections)

    def for_each(self, visitor: Callable[[Connection], None]) -> int:
        """
        Call visitor for every registered connection.

        Iterates over a snapshot so connections may come and go meanwhile.
        A connection whose write fails is dropped from the registry and the
        iteration continues with the next one.

        Args:
            visitor: Function called with each connection

        Returns:
            Number of connections visited without a write failure
        """
        visited = 0
        for connection in self.snapshot():
            if not connection.is_valid:
                self.remove(connection)
                continue
            try:
                visitor(connection)
                visited += 1
            except ConnectionClosedError as e:
                logger.debug(f"Dropping {connection!r}: {e}")
                self.remove(connection)
        return visited
