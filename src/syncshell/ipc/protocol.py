"""Wire protocol helpers for the shell integration socket.

Newline-delimited UTF-8 text, one message per line:

    client -> server   COMMAND:argument
    server -> client   STATUS:<code>:<path>
    server -> client   UPDATE_VIEW          (broadcast)
"""

from typing import List, Tuple

from loguru import logger

ENCODING = "utf-8"

RETRIEVE_FOLDER_STATUS = "RETRIEVE_FOLDER_STATUS"
RETRIEVE_FILE_STATUS = "RETRIEVE_FILE_STATUS"
UPDATE_VIEW = "UPDATE_VIEW"
STATUS_PREFIX = "STATUS"


class LineBuffer:
    """Accumulates received bytes and yields complete lines.

    A line split across several deliveries is returned once, when its
    terminating newline arrives. A line longer than `max_line_bytes` is
    dropped, up to and including its newline, whether it arrives in one
    delivery or keeps growing across several.
    """

    def __init__(self, max_line_bytes: int = 64 * 1024):
        self.max_line_bytes = max_line_bytes
        self._buf = bytearray()
        self._discarding = False

    def __len__(self) -> int:
        return len(self._buf)

    def feed(self, data: bytes) -> List[str]:
        """
        Add received bytes and extract complete lines.

        Args:
            data: Bytes as delivered by the socket

        Returns:
            Decoded lines without their trailing newline, in receipt order
        """
        self._buf.extend(data)
        lines = []
        while True:
            idx = self._buf.find(b"\n")
            if idx < 0:
                break
            raw = bytes(self._buf[:idx])
            del self._buf[:idx + 1]
            if self._discarding:
                self._discarding = False
                continue
            if len(raw) > self.max_line_bytes:
                logger.warning(f"Discarding oversized command line ({len(raw)} bytes)")
                continue
            lines.append(raw.decode(ENCODING, errors="replace"))

        if len(self._buf) > self.max_line_bytes:
            logger.warning(
                f"Discarding oversized command line ({len(self._buf)} bytes buffered)"
            )
            self._buf.clear()
            self._discarding = True
        return lines


def parse_line(line: str) -> Tuple[str, str]:
    """
    Split a command line into command name and argument.

    Trailing whitespace is trimmed from the line, the argument is trimmed
    on both sides. A line without ":" is a command with an empty argument.

    Examples:
      "RETRIEVE_FILE_STATUS:/sync/a.txt\\r" -> ("RETRIEVE_FILE_STATUS", "/sync/a.txt")
      "PING"                              -> ("PING", "")
      "CMD: a:b "                         -> ("CMD", "a:b")
    """
    command, _, argument = line.rstrip().partition(":")
    return command, argument.strip()


def format_status(code: str, path: str) -> str:
    """Build a STATUS response line (without newline)."""
    return f"{STATUS_PREFIX}:{code}:{path}"


def encode_message(message: str) -> bytes:
    """Encode one outgoing message as a newline-terminated line."""
    return (message + "\n").encode(ENCODING)
