"""
Configuration management for Pin Radio
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from .errors import ConfigurationError

DEFAULT_MPD_HOST = "127.0.0.1"
DEFAULT_MPD_PORT = 6600

VALID_METRICS = {"euclidean", "cosine"}
VALID_RANKINGS = {"features", "genres"}


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "pin-radio"
    return Path.home() / ".config" / "pin-radio"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "pin-radio"
    return Path.home() / ".local" / "share" / "pin-radio"


@dataclass
class LibraryConfig:
    """Configuration for the analysed track library."""

    database_path: str = field(
        default_factory=lambda: str(get_data_dir() / "library.db")
    )
    genres_path: str = "./genres.json"


@dataclass
class PlayerConfig:
    """Configuration for the MPD connection."""

    host: str = DEFAULT_MPD_HOST
    port: int = DEFAULT_MPD_PORT
    password: Optional[str] = None
    timeout: Optional[float] = None  # None blocks forever on idle


@dataclass
class QueueConfig:
    """Configuration for queue synchronization."""

    keep_queue: bool = False
    prefill: int = 1
    dedup: bool = True
    metric: str = "euclidean"  # 'euclidean' or 'cosine'
    ranking: str = "features"  # 'features' or 'genres'

    def validate(self) -> None:
        """Validate queue configuration values.

        Raises:
            ConfigurationError: If configuration values are invalid
        """
        if self.metric not in VALID_METRICS:
            raise ConfigurationError(
                f"Invalid metric: {self.metric!r}. Valid metrics are: {sorted(VALID_METRICS)}"
            )
        if self.ranking not in VALID_RANKINGS:
            raise ConfigurationError(
                f"Invalid ranking: {self.ranking!r}. Valid rankings are: {sorted(VALID_RANKINGS)}"
            )
        if self.prefill < 1:
            raise ConfigurationError(f"prefill must be at least 1, got {self.prefill}")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = None  # default: ~/.local/share/pin-radio/pin-radio.log
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Current working directory
    2. XDG_CONFIG_HOME/pin-radio (or ~/.config/pin-radio)
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config
    return get_config_dir() / "config.toml"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Pin Radio Configuration

[library]
# SQLite database of analysed tracks
# database_path = "~/.local/share/pin-radio/library.db"

# Genre weight table (only read when ranking = "genres")
genres_path = "./genres.json"

[player]
# MPD_HOST and MPD_PORT in the environment take precedence
host = "127.0.0.1"
port = 6600
# password = "secret"

[queue]
# Keep the existing queue around the pinned song instead of clearing it
keep_queue = false

# Number of similar songs queued when a new pin is set
prefill = 1

# Skip near-duplicate tracks
dedup = true

# Distance metric: "euclidean" or "cosine"
metric = "euclidean"

# Ranking strategy: "features" (audio analysis) or "genres" (genre weights)
ranking = "features"

[logging]
level = "INFO"
console_output = false
"""


def parse_mpd_host(value: str) -> Tuple[Optional[str], str]:
    """Split an MPD_HOST value into (password, host).

    Supports `host`, `password@host`, socket paths and `@abstract` names.
    """
    if "@" not in value:
        return None, value
    password, host = value.split("@", 1)
    if password == "":
        # Abstract socket: keep the leading '@'
        return None, value
    return password, host


def apply_env_overrides(config: Config) -> Config:
    """Override player settings with MPD_HOST / MPD_PORT when present.

    Raises:
        ConfigurationError: If MPD_PORT is not an integer
    """
    mpd_host = os.environ.get("MPD_HOST")
    if mpd_host:
        password, host = parse_mpd_host(mpd_host)
        config.player.host = host
        if password:
            config.player.password = password

    mpd_port = os.environ.get("MPD_PORT")
    if mpd_port:
        try:
            config.player.port = int(mpd_port)
        except ValueError:
            raise ConfigurationError(
                f"MPD_PORT must be an integer, got {mpd_port!r}"
            ) from None

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - MPD_HOST
    - MPD_PORT

    Raises:
        ConfigurationError: If the file cannot be parsed or holds invalid values
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        return apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Error loading configuration from {config_path}: {e}"
        ) from e

    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        config.library = LibraryConfig(
            database_path=str(
                Path(
                    library_data.get("database_path", config.library.database_path)
                ).expanduser()
            ),
            genres_path=str(
                Path(
                    library_data.get("genres_path", config.library.genres_path)
                ).expanduser()
            ),
        )

    if "player" in toml_data:
        player_data = toml_data["player"]
        config.player = PlayerConfig(
            host=player_data.get("host", config.player.host),
            port=player_data.get("port", config.player.port),
            password=player_data.get("password"),
            timeout=player_data.get("timeout"),
        )

    if "queue" in toml_data:
        queue_data = toml_data["queue"]
        config.queue = QueueConfig(
            keep_queue=queue_data.get("keep_queue", config.queue.keep_queue),
            prefill=queue_data.get("prefill", config.queue.prefill),
            dedup=queue_data.get("dedup", config.queue.dedup),
            metric=queue_data.get("metric", config.queue.metric),
            ranking=queue_data.get("ranking", config.queue.ranking),
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    config.queue.validate()
    return apply_env_overrides(config)
