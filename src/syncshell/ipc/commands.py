"""Command table mapping command names to handlers."""

from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Tuple

if TYPE_CHECKING:
    from syncshell.ipc.connections import Connection

# handler(argument, connection); responses are written to the connection
Handler = Callable[[str, "Connection"], None]


class CommandRegistry:
    """Fixed mapping from command name to handler.

    Built once at startup and read-only afterwards. Lookups are exact,
    case-sensitive matches.
    """

    def __init__(self, entries: Iterable[Tuple[str, Handler]]):
        """
        Build the command table.

        Args:
            entries: (command name, handler) pairs

        Raises:
            ValueError: If a command name is empty or appears twice
        """
        table = {}
        for name, handler in entries:
            if not name:
                raise ValueError("Command name must not be empty")
            if name in table:
                raise ValueError(f"Duplicate command: {name}")
            table[name] = handler
        self._handlers = MappingProxyType(table)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def lookup(self, name: str) -> Optional[Handler]:
        return self._handlers.get(name)

    def names(self) -> List[str]:
        return sorted(self._handlers)
