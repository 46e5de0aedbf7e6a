"""Local socket server for shell integration clients."""

import os
import socket
import stat
import threading
import time
from typing import List, Optional

from loguru import logger

from syncshell.core.config import ServerConfig
from syncshell.domain.sync.provider import StatusProvider
from syncshell.ipc.broadcast import Broadcaster
from syncshell.ipc.commands import CommandRegistry
from syncshell.ipc.connections import Connection, ConnectionRegistry
from syncshell.ipc.engine import ProtocolEngine
from syncshell.ipc.errors import BindError
from syncshell.ipc.handlers import build_command_registry


class Listener:
    """Unix socket listener.

    Accepts connections in a background thread and serves each client on
    its own thread, so a slow status query only delays its own client.
    """

    def __init__(
        self,
        connections: ConnectionRegistry,
        commands: CommandRegistry,
        server_config: Optional[ServerConfig] = None,
    ):
        """
        Initialize listener.

        Args:
            connections: Registry every accepted client is added to
            commands: Command table for the clients' protocol engines
            server_config: Socket tuning (line limit, timeouts)
        """
        self.connections = connections
        self.commands = commands
        self.config = server_config or ServerConfig()
        self.address: Optional[str] = None
        self.server_socket: Optional[socket.socket] = None
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self._client_threads: List[threading.Thread] = []

    def start(self, address: str) -> None:
        """
        Bind the socket address and start accepting connections.

        A socket file left behind by a dead process is removed first.

        Raises:
            BindError: If the address is owned by a live server or cannot
                be bound. Fatal, not retried.
        """
        if self.running:
            return

        try:
            self.server_socket = self._bind(address)
        except BindError as e:
            logger.error(f"Can't start server: {e}")
            raise

        self.address = address
        self.running = True
        self.thread = threading.Thread(
            target=self._run_server, name="syncshell-accept", daemon=True
        )
        self.thread.start()
        logger.info(f"Server started, listening at {address}")

    def _bind(self, address: str) -> socket.socket:
        if not hasattr(socket, "AF_UNIX"):
            raise BindError(address, "local sockets are not supported on this platform")

        try:
            os.makedirs(os.path.dirname(address) or ".", exist_ok=True)
        except OSError as e:
            raise BindError(address, str(e)) from e

        remove_stale_socket(address)

        server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            server_socket.bind(address)
            os.chmod(address, stat.S_IRUSR | stat.S_IWUSR)  # 0600
            server_socket.listen(5)
        except OSError as e:
            server_socket.close()
            raise BindError(address, str(e)) from e

        server_socket.settimeout(self.config.accept_poll_seconds)  # Poll for shutdown
        return server_socket

    def stop(self) -> None:
        """Stop accepting connections and remove the socket file.

        Connected clients are not closed; see close_all().
        """
        self.running = False

        # Close server socket to unblock accept()
        if self.server_socket:
            self.server_socket.close()

        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=2.0)

        if self.address and os.path.exists(self.address):
            try:
                os.unlink(self.address)
            except OSError as e:
                logger.warning(f"Could not remove socket {self.address}: {e}")

        logger.info("Server stopped")

    def close_all(self) -> None:
        """Disconnect every client and wait for their threads to finish."""
        for connection in self.connections.snapshot():
            connection.close()
        for thread in list(self._client_threads):
            thread.join(timeout=2.0)

    def _run_server(self) -> None:
        """Accept loop."""
        while self.running:
            try:
                client_socket, _ = self.server_socket.accept()
            except socket.timeout:
                # Timeout is normal, just check if we should continue
                continue
            except OSError as e:
                if self.running:  # Only log if we're still supposed to be running
                    logger.error(f"Error accepting connection: {e}")
                    time.sleep(self.config.accept_poll_seconds)
                continue

            self._on_new_connection(client_socket)

    def _on_new_connection(self, client_socket: socket.socket) -> None:
        client_socket.settimeout(self.config.write_timeout_seconds)
        connection = Connection(client_socket, max_line_bytes=self.config.max_line_bytes)
        self.connections.add(connection)
        engine = ProtocolEngine(connection, self.commands)
        logger.debug(f"New connection {connection!r}")

        thread = threading.Thread(
            target=self._handle_client,
            args=(connection, engine),
            name=f"syncshell-client-{connection.id}",
            daemon=True,
        )
        self._client_threads = [t for t in self._client_threads if t.is_alive()]
        self._client_threads.append(thread)
        thread.start()

    def _handle_client(self, connection: Connection, engine: ProtocolEngine) -> None:
        """
        Read and dispatch commands until the client disconnects.

        Args:
            connection: Registered client connection
            engine: Protocol engine attached to the connection
        """
        try:
            while connection.is_valid:
                data = connection.recv()
                if data is None:
                    continue
                if not data:
                    break
                engine.feed(data)
        except OSError as e:
            if connection.is_valid:
                logger.debug(f"Read from {connection!r} failed: {e}")
        finally:
            self.connections.remove(connection)
            connection.close()
            logger.debug(f"Lost connection {connection!r}")


def remove_stale_socket(address: str) -> None:
    """
    Remove a socket file left behind by a server that is no longer running.

    Raises:
        BindError: If a live server answers on the address, or the path
            exists and is not a socket
    """
    try:
        mode = os.lstat(address).st_mode
    except FileNotFoundError:
        return
    except OSError as e:
        raise BindError(address, str(e)) from e

    if not stat.S_ISSOCK(mode):
        raise BindError(address, "path exists and is not a socket")

    probe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    probe.settimeout(1.0)
    try:
        probe.connect(address)
    except OSError:
        # Nobody listening: stale
        pass
    else:
        raise BindError(address, "address already in use by another process")
    finally:
        probe.close()

    try:
        os.unlink(address)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise BindError(address, str(e)) from e
    logger.info(f"Removed stale socket {address}")


class SocketApi:
    """The command server: listener, registries and broadcaster wired together.

    Usage:
        api = SocketApi(folder_manager, "/run/user/1000/syncshell/socket")
        api.start()
        ...
        api.stop()
    """

    def __init__(
        self,
        provider: StatusProvider,
        address: str,
        server_config: Optional[ServerConfig] = None,
    ):
        """
        Initialize the server. Nothing is bound until start().

        Args:
            provider: Source of folder resolution, file status and change events
            address: Socket path to listen on
            server_config: Socket tuning
        """
        self.address = address
        self.connections = ConnectionRegistry()
        self.commands = build_command_registry(provider)
        self.broadcaster = Broadcaster(provider, self.connections)
        self.listener = Listener(self.connections, self.commands, server_config)

    def __enter__(self) -> "SocketApi":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def start(self) -> None:
        """
        Start listening.

        Raises:
            BindError: If the socket address cannot be acquired
        """
        self.listener.start(self.address)

    def stop(self) -> None:
        """Stop notifications, stop listening and disconnect all clients."""
        self.broadcaster.close()
        self.listener.stop()
        self.listener.close_all()
