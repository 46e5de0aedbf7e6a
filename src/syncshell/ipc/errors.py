"""Exceptions raised by the socket API."""


class SocketApiError(Exception):
    """Base class for socket API errors."""


class BindError(SocketApiError):
    """Raised when the listening address cannot be acquired.

    Fatal: the server does not run and does not retry.

    Attributes:
        address: The socket address that could not be bound.
    """

    def __init__(self, address: str, reason: str) -> None:
        self.address = address
        self.reason = reason
        super().__init__(f"Cannot listen on {address}: {reason}")


class ConnectionClosedError(SocketApiError):
    """Raised when writing to a client that has gone away."""
