"""
Configuration management for Beatbox
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class LibraryConfig:
    """Configuration for the track/playlist store."""

    backend: str = "sqlite"  # 'sqlite' or 'memory'
    database_path: Optional[str] = None  # Default: <data_dir>/beatbox.db
    auto_update_smart_playlists: bool = True

    def validate(self) -> None:
        """Validate library configuration values.

        Raises:
            ValueError: If the backend is unknown
        """
        valid_backends = {"sqlite", "memory"}
        if self.backend not in valid_backends:
            raise ValueError(
                f"Invalid library backend: {self.backend!r}. "
                f"Valid backends are: {valid_backends}"
            )


@dataclass
class PlaybackConfig:
    """Configuration for the playback session."""

    volume: int = 75
    min_history_seconds: float = 5.0  # Shorter listens are not logged at all
    min_play_count_seconds: float = 30.0  # Unskipped listens above this bump play_count
    mpv_socket_path: Optional[str] = None
    poll_interval: float = 0.25  # Seconds between mpv status polls

    def validate(self) -> None:
        """Validate playback configuration values.

        Raises:
            ValueError: If thresholds or volume are out of range
        """
        if not 0 <= self.volume <= 100:
            raise ValueError(f"Volume must be between 0 and 100, got {self.volume}")
        if self.min_history_seconds < 0 or self.min_play_count_seconds < 0:
            raise ValueError("Listening thresholds must not be negative")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/beatbox/beatbox.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    playback: PlaybackConfig = field(default_factory=PlaybackConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "beatbox"
    return Path.home() / ".config" / "beatbox"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the current working directory first, then
    falls back to XDG_CONFIG_HOME/beatbox (or ~/.config/beatbox).
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "beatbox"
    return Path.home() / ".local" / "share" / "beatbox"


def get_database_path(config: Config) -> Path:
    """Resolve the SQLite database path for a configuration."""
    if config.library.database_path:
        return Path(config.library.database_path).expanduser()
    return get_data_dir() / "beatbox.db"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Beatbox Configuration

[library]
# Storage backend: "sqlite" (persistent) or "memory" (lost on exit)
backend = "sqlite"

# Custom database path (default: ~/.local/share/beatbox/beatbox.db)
# database_path = "/path/to/beatbox.db"

# Recompute smart playlists whenever tracks are added, edited or removed
auto_update_smart_playlists = true

[playback]
# Default volume (0-100)
volume = 75

# Listens shorter than this (seconds) are not written to play history
min_history_seconds = 5.0

# Unskipped listens longer than this (seconds) increment the play count
min_play_count_seconds = 30.0

# Path for mpv socket (auto-detected if not specified)
# mpv_socket_path = "/tmp/beatbox-mpv-socket"

# Seconds between mpv status polls
poll_interval = 0.25

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/beatbox/beatbox.log)
# log_file = "/path/to/custom/beatbox.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - BEATBOX_DATABASE_PATH
    - BEATBOX_LOG_LEVEL
    """
    # Load .env file from config directory if it exists
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        print(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = _parse_config(toml_data)
        except (OSError, tomllib.TOMLDecodeError, TypeError, ValueError) as e:
            print(f"Error loading configuration from {config_path}: {e}")
            print("Using default configuration.")
            config = Config()

    _apply_env_overrides(config)
    return config


def _parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML, falling back to defaults per key."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        database_path = library_data.get("database_path")
        if database_path:
            database_path = str(Path(database_path).expanduser())
        config.library = LibraryConfig(
            backend=library_data.get("backend", config.library.backend),
            database_path=database_path,
            auto_update_smart_playlists=library_data.get(
                "auto_update_smart_playlists",
                config.library.auto_update_smart_playlists,
            ),
        )
        try:
            config.library.validate()
        except ValueError as e:
            print(f"Warning: Invalid library configuration: {e}")
            print("Using default library configuration.")
            config.library = LibraryConfig()

    if "playback" in toml_data:
        playback_data = toml_data["playback"]
        config.playback = PlaybackConfig(
            volume=playback_data.get("volume", config.playback.volume),
            min_history_seconds=float(
                playback_data.get(
                    "min_history_seconds", config.playback.min_history_seconds
                )
            ),
            min_play_count_seconds=float(
                playback_data.get(
                    "min_play_count_seconds", config.playback.min_play_count_seconds
                )
            ),
            mpv_socket_path=playback_data.get("mpv_socket_path"),
            poll_interval=float(
                playback_data.get("poll_interval", config.playback.poll_interval)
            ),
        )
        try:
            config.playback.validate()
        except ValueError as e:
            print(f"Warning: Invalid playback configuration: {e}")
            print("Using default playback configuration.")
            config.playback = PlaybackConfig()

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def _apply_env_overrides(config: Config) -> None:
    database_path = os.environ.get("BEATBOX_DATABASE_PATH")
    if database_path:
        config.library.database_path = database_path

    log_level = os.environ.get("BEATBOX_LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()


def ensure_directories() -> None:
    """Ensure configuration and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
