"""Centralized Rich Console management for CLI output."""

from rich.console import Console

_console: Console | None = None
_err_console: Console | None = None


def get_console(stderr: bool = False) -> Console:
    """Get or create the global Rich Console instance.

    Args:
        stderr: Return the console bound to stderr instead of stdout

    Returns:
        Console: The global Rich Console instance
    """
    global _console, _err_console
    if stderr:
        if _err_console is None:
            _err_console = Console(stderr=True)
        return _err_console
    if _console is None:
        _console = Console()
    return _console


def safe_print(message: str, style: str | None = None, stderr: bool = False) -> None:
    """Print using Rich Console with optional styling.

    Markup is disabled so paths containing brackets print verbatim.

    Args:
        message: The message to print
        style: Optional Rich style string (e.g., "bold red", "green")
        stderr: Print to stderr
    """
    console = get_console(stderr=stderr)
    if style:
        console.print(message, style=style, markup=False, highlight=False)
    else:
        console.print(message, markup=False, highlight=False)
