"""
Server process bootstrap: configuration, logging, folder manager, socket API.
"""

import signal
import threading
from typing import Iterable, Optional, Tuple

from loguru import logger

from syncshell.core.config import Config, get_log_file_path, get_socket_path
from syncshell.core.console import safe_print
from syncshell.core.output import setup_loguru
from syncshell.domain.sync.folders import FolderManager
from syncshell.domain.sync.watcher import FolderWatcher
from syncshell.ipc.errors import BindError
from syncshell.ipc.server import SocketApi

POLL_INTERVAL_SECONDS = 0.1


def build_folder_manager(
    config: Config, extra_folders: Iterable[Tuple[str, str]] = ()
) -> FolderManager:
    """
    Create the folder manager from configuration plus command-line folders.

    Args:
        config: Application configuration
        extra_folders: (alias, path) pairs given on the command line

    Returns:
        Folder manager with every folder added
    """
    manager = FolderManager.from_config(config.folders)
    for alias, path in extra_folders:
        manager.add_folder(alias, path)
    return manager


def run_server(
    config: Config,
    socket_path: Optional[str] = None,
    extra_folders: Iterable[Tuple[str, str]] = (),
    stop_event: Optional[threading.Event] = None,
) -> int:
    """Run the socket API until interrupted.

    Args:
        config: Application configuration
        socket_path: Override for the configured socket address
        extra_folders: (alias, path) pairs added to the configured folders
        stop_event: Set to stop the server (installed signal handlers set it too)

    Returns:
        Exit code (0 for success, 1 if the socket could not be bound)
    """
    setup_loguru(
        get_log_file_path(config),
        level=config.logging.level,
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count,
        console_output=config.logging.console_output,
    )

    manager = build_folder_manager(config, extra_folders)
    address = socket_path or get_socket_path(config.server)
    api = SocketApi(manager, address, config.server)

    try:
        api.start()
    except BindError as e:
        safe_print(f"Cannot start server: {e}", style="red", stderr=True)
        return 1

    watcher: Optional[FolderWatcher] = None
    if config.watch.enabled and manager.folders():
        watcher = FolderWatcher(manager, debounce_ms=config.watch.debounce_ms)
        watcher.start()

    if stop_event is None:
        stop_event = threading.Event()
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, lambda signum, frame: stop_event.set())

    safe_print(f"Listening at {address}", style="green")
    for folder in manager.folders():
        safe_print(f"   {folder.alias}: {folder.path}", style="dim")

    try:
        while not stop_event.wait(POLL_INTERVAL_SECONDS):
            if watcher:
                watcher.poll()
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        if watcher:
            watcher.stop()
        api.stop()

    return 0
