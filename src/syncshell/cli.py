"""
syncshell CLI - Entry point

Runs the shell integration server, or queries a running one.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from syncshell import ipc
from syncshell.core.config import Config, get_socket_path, load_config
from syncshell.core.console import safe_print
from syncshell.ipc.protocol import RETRIEVE_FILE_STATUS, RETRIEVE_FOLDER_STATUS


def parse_folder_arg(value: str) -> Tuple[str, str]:
    """Parse an ALIAS=PATH folder argument."""
    alias, sep, path = value.partition("=")
    if not sep or not alias or not path:
        raise argparse.ArgumentTypeError(f"Expected ALIAS=PATH, got {value!r}")
    return alias, os.path.abspath(os.path.expanduser(path))


def resolve_socket_path(config: Config, override: Optional[str]) -> str:
    if override:
        return os.path.abspath(os.path.expanduser(override))
    return get_socket_path(config.server)


def query_status(command: str, path: str, socket_path: str) -> int:
    """
    Ask a running server for the status of a path.

    Args:
        command: RETRIEVE_FILE_STATUS or RETRIEVE_FOLDER_STATUS
        path: Path to query (made absolute)
        socket_path: Server socket path

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    success, message = ipc.send_command(
        command, os.path.abspath(path), socket_path=socket_path
    )
    if not success:
        safe_print(message, style="red", stderr=True)
        return 1

    code, status_path = ipc.parse_status(message)
    style = {"OK": "green", "NEED_SYNC": "yellow"}.get(code, "dim")
    safe_print(f"{code}\t{status_path}", style=style)
    return 0


def watch_updates(socket_path: str) -> int:
    """Print every notification pushed by the server until it goes away."""
    try:
        for line in ipc.iter_updates(socket_path):
            safe_print(line)
    except OSError as e:
        safe_print(f"syncshell is not running ({e})", style="red", stderr=True)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="syncshell",
        description="syncshell - sync status for file manager integrations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # Add global options
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to config.toml (default: ./config.toml or ~/.config/syncshell/config.toml)",
    )
    parser.add_argument("--socket", help="Socket path (overrides configuration)")

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the status server")
    serve_parser.add_argument(
        "--folder",
        action="append",
        type=parse_folder_arg,
        default=[],
        metavar="ALIAS=PATH",
        help="Manage an additional folder (repeatable)",
    )

    file_parser = subparsers.add_parser("file", help="Query the status of a file")
    file_parser.add_argument("path", help="File to query")

    folder_parser = subparsers.add_parser("folder", help="Query the status of a folder")
    folder_parser.add_argument("path", help="Folder to query")

    subparsers.add_parser("watch", help="Print status change notifications")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the syncshell command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.subcommand:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)
    socket_path = resolve_socket_path(config, args.socket)

    if args.subcommand == "serve":
        from syncshell.main import run_server

        sys.exit(run_server(config, socket_path=socket_path, extra_folders=args.folder))

    elif args.subcommand == "file":
        sys.exit(query_status(RETRIEVE_FILE_STATUS, args.path, socket_path))

    elif args.subcommand == "folder":
        sys.exit(query_status(RETRIEVE_FOLDER_STATUS, args.path, socket_path))

    elif args.subcommand == "watch":
        sys.exit(watch_updates(socket_path))


if __name__ == "__main__":
    main()
