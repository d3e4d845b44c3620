"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database connections and migrations (SQLite)
- Logging (Loguru) and console output (Rich)

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    LibraryConfig,
    LoggingConfig,
    PlaybackConfig,
    create_default_config,
    ensure_directories,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_database_path,
    load_config,
)

# Console
from .console import get_console, safe_print

# Database
from .database import SCHEMA_VERSION, get_db_connection, init_database

# Output
from .output import log, setup_from_config, setup_loguru

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "LoggingConfig",
    "PlaybackConfig",
    "create_default_config",
    "ensure_directories",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_database_path",
    "load_config",
    # Console
    "get_console",
    "safe_print",
    # Database
    "SCHEMA_VERSION",
    "get_db_connection",
    "init_database",
    # Output
    "log",
    "setup_from_config",
    "setup_loguru",
]
