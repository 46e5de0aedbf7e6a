"""Per-connection line reader and command dispatcher."""

from loguru import logger

from syncshell.ipc.commands import CommandRegistry
from syncshell.ipc.connections import Connection
from syncshell.ipc.protocol import parse_line


class ProtocolEngine:
    """Turns the byte stream of one connection into handler calls.

    Handlers run synchronously on the caller's thread, one line at a time,
    so commands from a connection are processed strictly in receipt order.
    """

    def __init__(self, connection: Connection, commands: CommandRegistry):
        self.connection = connection
        self.commands = commands

    def feed(self, data: bytes) -> int:
        """
        Process bytes received from the client.

        Args:
            data: Bytes as delivered by the socket

        Returns:
            Number of commands dispatched
        """
        dispatched = 0
        for line in self.connection.buffer.feed(data):
            if self.dispatch_line(line):
                dispatched += 1
        return dispatched

    def dispatch_line(self, line: str) -> bool:
        """
        Dispatch one complete command line.

        Unknown commands are logged and dropped; the protocol has no error
        reply. A handler that raises is logged and the connection stays open.

        Returns:
            True if a handler was invoked
        """
        command, argument = parse_line(line)
        if not command:
            return False

        handler = self.commands.lookup(command)
        if handler is None:
            logger.info(
                f"The command is not supported by this version of the client: "
                f"{command!r} with argument: {argument!r}"
            )
            return False

        logger.debug(f"{self.connection!r} -> {command} {argument}")
        try:
            handler(argument, self.connection)
        except Exception:
            logger.exception(f"Command {command} failed for {argument!r}")
        return True
