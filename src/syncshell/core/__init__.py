"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging (Loguru)
- Console management (Rich)
"""

# Configuration
from .config import (
    Config,
    FolderConfig,
    LoggingConfig,
    ServerConfig,
    WatchConfig,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_log_file_path,
    get_socket_path,
    create_default_config,
)

# Logging
from .output import setup_loguru

# Console
from .console import get_console, safe_print

__all__ = [
    # Config
    "Config",
    "FolderConfig",
    "LoggingConfig",
    "ServerConfig",
    "WatchConfig",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_log_file_path",
    "get_socket_path",
    "create_default_config",
    # Logging
    "setup_loguru",
    # Console
    "get_console",
    "safe_print",
]
