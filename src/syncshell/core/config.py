"""
Configuration management for syncshell
"""

import os
import sys
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

APP_NAME = "syncshell"


@dataclass
class ServerConfig:
    """Configuration for the local command socket."""

    app_name: str = APP_NAME  # Branding used to derive the default socket name
    socket_path: Optional[str] = None  # Explicit socket path (overrides app_name)
    max_line_bytes: int = 64 * 1024  # Longest command line accepted from a client
    accept_poll_seconds: float = 1.0  # How often blocking loops check for shutdown
    write_timeout_seconds: float = 5.0  # A client that stops reading is dropped after this

    def validate(self) -> None:
        """Validate server configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.max_line_bytes <= 0:
            raise ValueError(
                f"max_line_bytes must be positive, got {self.max_line_bytes}"
            )
        if self.accept_poll_seconds <= 0:
            raise ValueError(
                f"accept_poll_seconds must be positive, got {self.accept_poll_seconds}"
            )
        if self.write_timeout_seconds <= 0:
            raise ValueError(
                f"write_timeout_seconds must be positive, got {self.write_timeout_seconds}"
            )


@dataclass
class FolderConfig:
    """A managed sync folder."""

    alias: str
    path: str


@dataclass
class WatchConfig:
    """Configuration for local file watching."""

    enabled: bool = True
    debounce_ms: int = 250  # Coalesce bursts of file events into one change notification


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/syncshell/syncshell.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to stderr (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    server: ServerConfig = field(default_factory=ServerConfig)
    folders: List[FolderConfig] = field(default_factory=list)
    watch: WatchConfig = field(default_factory=WatchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / APP_NAME
    return Path.home() / ".config" / APP_NAME


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the current working directory first, then
    falls back to XDG_CONFIG_HOME/syncshell (or ~/.config/syncshell).
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / APP_NAME
    return Path.home() / ".local" / "share" / APP_NAME


def get_socket_path(server: ServerConfig) -> str:
    """
    Get the address of the local command socket.

    Args:
        server: Server configuration

    Returns:
        Socket address. On Windows this is a named pipe name.
    """
    if server.socket_path:
        return str(Path(server.socket_path).expanduser())

    if sys.platform == "win32":
        return "\\\\.\\pipe\\" + server.app_name

    # Use XDG_RUNTIME_DIR if available, otherwise fall back to ~/.local/share
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        socket_dir = Path(runtime_dir) / server.app_name
    else:
        socket_dir = Path.home() / ".local" / "share" / server.app_name
    return str(socket_dir / "socket")


def get_log_file_path(config: Config) -> Path:
    """Get the path to the log file."""
    if config.logging.log_file:
        return Path(config.logging.log_file)
    return get_data_dir() / f"{APP_NAME}.log"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# syncshell configuration

[server]
# Branding used to derive the socket name
app_name = "syncshell"

# Explicit socket path (default: $XDG_RUNTIME_DIR/syncshell/socket)
# socket_path = "/run/user/1000/syncshell/socket"

# Longest command line accepted from a client, in bytes
max_line_bytes = 65536

# Seconds before a client that stops reading is disconnected
write_timeout_seconds = 5.0

# Managed sync folders
# [[folders]]
# alias = "documents"
# path = "~/Sync/Documents"

[watch]
# Mark locally modified files as needing sync
enabled = true

# Milliseconds to wait after the last file event before notifying clients
debounce_ms = 250

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/syncshell/syncshell.log)
# log_file = "/path/to/custom/syncshell.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to stderr (useful for debugging)
console_output = false
""".strip()


def _section(toml_data: dict, name: str) -> dict:
    """Return a TOML table, or an empty one if the key holds something else."""
    data = toml_data.get(name, {})
    if not isinstance(data, dict):
        logger.warning(f"Ignoring [{name}]: expected a table, got {type(data).__name__}")
        return {}
    return data


def _typed(data: dict, key: str, default, types):
    """Return data[key] if it has one of the expected types, else the default."""
    value = data.get(key, default)
    # bool is an int subclass; only accept it where bool is expected
    if isinstance(value, bool) and bool not in types:
        value = None
    if value is None or not isinstance(value, types):
        if key in data:
            logger.warning(f"Invalid value for {key}: {data[key]!r}. Using {default!r}.")
        return default
    return value


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per key."""
    config = Config()

    if "server" in toml_data:
        server_data = _section(toml_data, "server")
        defaults = ServerConfig()
        config.server = ServerConfig(
            app_name=_typed(server_data, "app_name", defaults.app_name, (str,)),
            socket_path=_typed(server_data, "socket_path", None, (str,)),
            max_line_bytes=_typed(
                server_data, "max_line_bytes", defaults.max_line_bytes, (int,)
            ),
            accept_poll_seconds=_typed(
                server_data, "accept_poll_seconds", defaults.accept_poll_seconds, (int, float)
            ),
            write_timeout_seconds=_typed(
                server_data,
                "write_timeout_seconds",
                defaults.write_timeout_seconds,
                (int, float),
            ),
        )
        try:
            config.server.validate()
        except ValueError as e:
            logger.warning(f"Invalid server configuration: {e}. Using defaults.")
            config.server = ServerConfig()

    folders = toml_data.get("folders", [])
    if not isinstance(folders, list):
        logger.warning("Ignoring folders: use [[folders]] entries, not a [folders] table")
        folders = []
    for folder_data in folders:
        if not isinstance(folder_data, dict):
            logger.warning(f"Skipping folder entry that is not a table: {folder_data!r}")
            continue
        alias = _typed(folder_data, "alias", None, (str,))
        path = _typed(folder_data, "path", None, (str,))
        if not alias or not path:
            logger.warning(f"Skipping folder entry without alias/path: {folder_data}")
            continue
        config.folders.append(
            FolderConfig(alias=alias, path=str(Path(path).expanduser()))
        )

    if "watch" in toml_data:
        watch_data = _section(toml_data, "watch")
        config.watch = WatchConfig(
            enabled=_typed(watch_data, "enabled", config.watch.enabled, (bool,)),
            debounce_ms=_typed(watch_data, "debounce_ms", config.watch.debounce_ms, (int,)),
        )

    if "logging" in toml_data:
        logging_data = _section(toml_data, "logging")
        log_file = _typed(logging_data, "log_file", None, (str,))
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=_typed(logging_data, "level", config.logging.level, (str,)).upper(),
            log_file=log_file,
            max_file_size_mb=_typed(
                logging_data, "max_file_size_mb", config.logging.max_file_size_mb, (int,)
            ),
            backup_count=_typed(
                logging_data, "backup_count", config.logging.backup_count, (int,)
            ),
            console_output=_typed(
                logging_data, "console_output", config.logging.console_output, (bool,)
            ),
        )

    return config


def _apply_env_overrides(config: Config) -> Config:
    """Environment variables override TOML values."""
    socket_path = os.environ.get("SYNCSHELL_SOCKET_PATH")
    log_level = os.environ.get("SYNCSHELL_LOG_LEVEL")

    if socket_path:
        config.server.socket_path = socket_path
    if log_level:
        config.logging.level = log_level.upper()
    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - SYNCSHELL_SOCKET_PATH
    - SYNCSHELL_LOG_LEVEL
    """
    # Load .env file from config directory if it exists
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        # Create config directory and default file
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        return _apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.error(f"Error loading configuration from {config_path}: {e}")
        logger.warning("Using default configuration.")
        return _apply_env_overrides(Config())

    return _apply_env_overrides(_parse_config(toml_data))
