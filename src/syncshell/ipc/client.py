"""IPC client for querying a running syncshell server."""

import socket
from typing import Iterator, Optional, Tuple

from syncshell.ipc.protocol import STATUS_PREFIX, LineBuffer, encode_message


def parse_status(line: str) -> Tuple[str, str]:
    """
    Parse a STATUS response line.

    Args:
        line: Response line without trailing newline

    Returns:
        (code, path) tuple

    Raises:
        ValueError: If the line is not a STATUS message
    """
    prefix, sep, rest = line.partition(":")
    if prefix != STATUS_PREFIX or not sep:
        raise ValueError(f"Not a status message: {line!r}")
    code, sep, path = rest.partition(":")
    if not code or not sep:
        raise ValueError(f"Malformed status message: {line!r}")
    return code, path


def connect(socket_path: str, timeout: Optional[float] = 5.0) -> socket.socket:
    """Open a client connection to the server socket."""
    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    sock.settimeout(timeout)
    try:
        sock.connect(socket_path)
    except OSError:
        sock.close()
        raise
    return sock


def send_command(
    command: str,
    argument: str = "",
    socket_path: str = "",
    timeout: float = 5.0,
) -> Tuple[bool, str]:
    """
    Send one command to the running server and wait for its STATUS reply.

    UPDATE_VIEW pushes that arrive before the reply are skipped.

    Args:
        command: Command name (e.g., 'RETRIEVE_FILE_STATUS')
        argument: Command argument (usually an absolute path)
        socket_path: Server socket path
        timeout: Seconds to wait for the server

    Returns:
        (success, message) tuple
            success: True if a status line was received
            message: The status line or an error description
    """
    line = f"{command}:{argument}" if argument else command

    try:
        sock = connect(socket_path, timeout=timeout)
    except FileNotFoundError:
        return False, "syncshell is not running"
    except ConnectionRefusedError:
        return False, "syncshell is not running"
    except OSError as e:
        return False, f"Failed to connect: {e}"

    try:
        sock.sendall(encode_message(line))
        buffer = LineBuffer()
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                return False, "No response from syncshell"
            for response in buffer.feed(chunk):
                if response.startswith(STATUS_PREFIX + ":"):
                    return True, response
    except socket.timeout:
        return False, "syncshell not responding (timeout)"
    except OSError as e:
        return False, f"Failed to send command: {e}"
    finally:
        sock.close()


def iter_updates(socket_path: str) -> Iterator[str]:
    """
    Follow the messages pushed by the server.

    Yields each line (normally UPDATE_VIEW) until the server closes the
    connection.

    Raises:
        OSError: If the server cannot be reached
    """
    sock = connect(socket_path, timeout=None)
    try:
        buffer = LineBuffer()
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                return
            yield from buffer.feed(chunk)
    finally:
        sock.close()
