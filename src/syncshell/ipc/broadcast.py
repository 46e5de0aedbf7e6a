"""Push notifications to every connected client."""

from loguru import logger

from syncshell.domain.sync.provider import StatusProvider
from syncshell.ipc.connections import ConnectionRegistry
from syncshell.ipc.protocol import UPDATE_VIEW


class Broadcaster:
    """Sends UPDATE_VIEW to all clients whenever sync state changes.

    The signal is coarse: clients re-issue their status queries after
    receiving it. The folder alias of the event is not forwarded.
    """

    def __init__(self, provider: StatusProvider, connections: ConnectionRegistry):
        self.connections = connections
        self._unsubscribe = provider.subscribe(self.on_sync_state_changed)

    def on_sync_state_changed(self, alias: str) -> None:
        self.broadcast(UPDATE_VIEW)

    def broadcast(self, message: str) -> int:
        """
        Send a message to every registered connection.

        Returns:
            Number of clients the message was delivered to
        """
        logger.debug(f"Broadcasting to {len(self.connections)} listeners: {message}")
        return self.connections.for_each(lambda connection: connection.send(message))

    def close(self) -> None:
        """Stop listening for sync state changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
