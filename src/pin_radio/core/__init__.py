"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging and terminal output (Loguru, Rich)
- Error taxonomy
- Analysed track store (SQLite)
"""

from .config import (
    Config,
    LibraryConfig,
    LoggingConfig,
    PlayerConfig,
    QueueConfig,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
)
from .errors import (
    ConfigurationError,
    LibraryExhaustedError,
    PinRadioError,
    PlayerCommandError,
    PlayerConnectionError,
    PlayerError,
    PlayerProtocolError,
    UnknownTrackError,
)

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "LoggingConfig",
    "PlayerConfig",
    "QueueConfig",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "load_config",
    # Errors
    "ConfigurationError",
    "LibraryExhaustedError",
    "PinRadioError",
    "PlayerCommandError",
    "PlayerConnectionError",
    "PlayerError",
    "PlayerProtocolError",
    "UnknownTrackError",
]
