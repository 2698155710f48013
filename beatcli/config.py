"""
Configuration management for beatcli.
"""
import json
import os
from pathlib import Path
from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any, List

from beatcli.logging_config import get_logger, ConfigurationError, InvalidModeError
from beatcli.playlist import PlaybackMode

logger = get_logger('config')

VALID_PLAYERS: List[str] = ["auto", "mpg123", "ffplay"]
VALID_LOG_LEVELS: List[str] = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class AppConfig:
    """Application configuration settings."""

    # Music library
    music_directory: str = "~/Music"
    scan_on_start: bool = False
    read_tags: bool = True

    # Audio settings
    audio_player: str = "auto"  # auto, mpg123, ffplay
    default_volume: int = 50
    default_mode: str = "sequential"

    # UI settings
    use_colors: bool = True
    clear_screen: bool = True
    show_lyrics: bool = True
    tick_interval: float = 0.2

    # Logging settings
    log_level: str = "WARNING"
    log_file: Optional[str] = None


class ConfigManager:
    """Manages configuration loading, saving, and validation."""

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self._get_default_config_path()
        self.config: AppConfig = AppConfig()
        self._load_config()

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "beatcli" / "config.json"
        return Path.home() / ".config" / "beatcli" / "config.json"

    def _load_config(self) -> None:
        """Load configuration from file."""
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            self._create_default_config()
            return

        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to load config: {e}")
            logger.info("Using default configuration")
            return

        if not isinstance(data, dict):
            logger.error(f"Config file {self.config_path} does not hold a JSON object")
            return
        self._apply_config_data(data)
        logger.info(f"Loaded configuration from {self.config_path}")

    def _create_default_config(self) -> None:
        """Create a default configuration file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w') as f:
                json.dump(asdict(self.config), f, indent=2)

            logger.info(f"Created default config at {self.config_path}")
        except IOError as e:
            logger.warning(f"Failed to create default config: {e}")

    def _apply_config_data(self, data: Dict[str, Any]) -> None:
        """Apply configuration data to AppConfig object."""
        known = {f.name for f in fields(AppConfig)}
        for key, value in data.items():
            if key in known:
                setattr(self.config, key, value)
            else:
                logger.warning(f"Ignoring unknown config key: {key}")

    def save_config(self) -> bool:
        """Save current configuration to file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w') as f:
                json.dump(asdict(self.config), f, indent=2)

            logger.info(f"Configuration saved to {self.config_path}")
            return True

        except IOError as e:
            logger.error(f"Failed to save configuration: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return getattr(self.config, key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        if not hasattr(self.config, key):
            raise ConfigurationError(f"Unknown configuration key: {key}")
        setattr(self.config, key, value)
        logger.debug(f"Config updated: {key} = {value}")

    def validate_config(self) -> List[str]:
        """Validate current configuration and return the list of issues."""
        issues = []

        if self.config.audio_player not in VALID_PLAYERS:
            issues.append(f"Invalid audio player: {self.config.audio_player}")

        volume = self.config.default_volume
        if not isinstance(volume, int) or isinstance(volume, bool) or not (0 <= volume <= 100):
            issues.append(f"Default volume must be 0-100, got {volume}")

        try:
            PlaybackMode.parse(str(self.config.default_mode))
        except InvalidModeError:
            issues.append(f"Invalid default mode: {self.config.default_mode}")

        interval = self.config.tick_interval
        if not isinstance(interval, (int, float)) or not (0.05 <= interval <= 5.0):
            issues.append(f"Tick interval must be 0.05-5.0 seconds, got {interval}")

        if str(self.config.log_level).upper() not in VALID_LOG_LEVELS:
            issues.append(f"Invalid log level: {self.config.log_level}")

        if issues:
            logger.warning(f"Configuration validation issues: {issues}")

        return issues

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self.config = AppConfig()
        logger.info("Configuration reset to defaults")

    def get_music_directory_path(self) -> Path:
        """Get the actual path to music directory."""
        return Path(self.config.music_directory).expanduser()

    def get_default_mode(self) -> PlaybackMode:
        return PlaybackMode.parse(str(self.config.default_mode))


def load_config(config_path: Optional[Path] = None) -> ConfigManager:
    """Load configuration and return manager.

    Raises:
        ConfigurationError: If the loaded values fail validation
    """
    manager = ConfigManager(config_path)
    issues = manager.validate_config()
    if issues:
        raise ConfigurationError("; ".join(issues))
    return manager
