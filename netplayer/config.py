"""Configuration management using XDG Base Directory Specification.

This module provides centralized configuration management following Linux
standards for config and data directories.
"""

import configparser
import os
from pathlib import Path
from typing import Optional, Set

from netplayer.exceptions import ConfigurationError


class Config:
    """
    Configuration manager using XDG Base Directory Specification.

    Follows Linux standards:
    - Config: ~/.config/netplayer/ (or XDG_CONFIG_HOME)
    - Data: ~/.local/share/netplayer/ (or XDG_DATA_HOME)
    """

    _instance: Optional['Config'] = None

    def __init__(self) -> None:
        """
        Initialize configuration manager.

        Sets up XDG Base Directory paths and loads or creates configuration.
        """
        # XDG Base Directory paths
        self.config_home = Path(os.getenv('XDG_CONFIG_HOME', Path.home() / '.config'))
        self.data_home = Path(os.getenv('XDG_DATA_HOME', Path.home() / '.local' / 'share'))

        # Application-specific directories
        self.app_name = 'netplayer'
        self.config_dir = self.config_home / self.app_name
        self.data_dir = self.data_home / self.app_name

        self.config_dir.mkdir(parents=True, exist_ok=True)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.config_file = self.config_dir / 'config.ini'
        self.config = configparser.ConfigParser()

        self._load_config()

    @classmethod
    def get_instance(cls) -> 'Config':
        """Get the singleton config instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next lookup re-reads the environment."""
        cls._instance = None

    def _load_config(self) -> None:
        """Load configuration from file or create defaults."""
        self._apply_defaults()
        if self.config_file.exists():
            try:
                self.config.read(self.config_file)
            except configparser.Error as e:
                raise ConfigurationError(f"Invalid config file {self.config_file}: {e}") from e
        else:
            self.save()

    def _apply_defaults(self) -> None:
        """Populate every section with its default values."""
        self.config['server'] = {
            'host': '127.0.0.1',
            'port': '2806',
            'max_frame_size': '1024',
            'read_timeout': '300',  # seconds, 0 disables
        }

        self.config['player'] = {
            'poll_interval': '0.5',
            'initial_volume': '1.0',
            'shuffle': 'true',
            'autoplay': 'true',
        }

        self.config['library'] = {
            'music_dirs': str(Path.home() / 'Music'),
            'extensions': '.mp3',
            'recursive': 'true',
        }

        self.config['logging'] = {
            'console_level': 'INFO',
        }

    def save(self) -> None:
        """
        Save configuration to file.

        Writes current configuration state to the config file.
        """
        try:
            with open(self.config_file, 'w') as f:
                self.config.write(f)
        except OSError as e:
            from netplayer.logging import get_logger
            logger = get_logger(__name__)
            logger.error("Failed to save config: %s", e, exc_info=True)

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> Optional[str]:
        """Get a configuration value."""
        return self.config.get(section, key, fallback=fallback)

    def set(self, section: str, key: str, value: str) -> None:
        """
        Set a configuration value.

        Args:
            section: Configuration section name
            key: Configuration key name
            value: Value to set
        """
        if section not in self.config:
            self.config.add_section(section)
        self.config.set(section, key, value)
        self.save()

    def get_bool(self, section: str, key: str, fallback: bool = False) -> bool:
        """Get a boolean configuration value."""
        try:
            return self.config.getboolean(section, key, fallback=fallback)
        except ValueError as e:
            raise ConfigurationError(f"[{section}] {key}: {e}") from e

    def get_int(self, section: str, key: str, fallback: int = 0) -> int:
        """Get an integer configuration value."""
        try:
            return self.config.getint(section, key, fallback=fallback)
        except ValueError as e:
            raise ConfigurationError(f"[{section}] {key}: {e}") from e

    def get_float(self, section: str, key: str, fallback: float = 0.0) -> float:
        """Get a float configuration value."""
        try:
            return self.config.getfloat(section, key, fallback=fallback)
        except ValueError as e:
            raise ConfigurationError(f"[{section}] {key}: {e}") from e

    def get_list(self, section: str, key: str, separator: str = ':', fallback: Optional[list[str]] = None) -> list[str]:
        """
        Get a list configuration value (colon separated by default).

        Args:
            section: Configuration section name
            key: Configuration key name
            separator: Separator character (default: ':')
            fallback: Default value if not found

        Returns:
            List of strings
        """
        value = self.get(section, key)
        if value:
            return [item.strip() for item in value.split(separator) if item.strip()]
        return fallback or []

    # Convenience properties
    @property
    def host(self) -> str:
        return self.get('server', 'host', '127.0.0.1')

    @property
    def port(self) -> int:
        port = self.get_int('server', 'port', 2806)
        if not 0 <= port <= 65535:
            raise ConfigurationError(f"[server] port out of range: {port}")
        return port

    @property
    def max_frame_size(self) -> int:
        size = self.get_int('server', 'max_frame_size', 1024)
        if size <= 0:
            raise ConfigurationError(f"[server] max_frame_size must be positive: {size}")
        return size

    @property
    def read_timeout(self) -> Optional[float]:
        """Client read timeout in seconds, or None when disabled."""
        timeout = self.get_float('server', 'read_timeout', 300.0)
        return timeout if timeout > 0 else None

    @property
    def poll_interval(self) -> float:
        interval = self.get_float('player', 'poll_interval', 0.5)
        if interval <= 0:
            raise ConfigurationError(f"[player] poll_interval must be positive: {interval}")
        return interval

    @property
    def initial_volume(self) -> float:
        return self.get_float('player', 'initial_volume', 1.0)

    @property
    def shuffle(self) -> bool:
        return self.get_bool('player', 'shuffle', True)

    @property
    def autoplay(self) -> bool:
        return self.get_bool('player', 'autoplay', True)

    @property
    def music_directories(self) -> list[Path]:
        """Get list of music directories to scan."""
        dirs = self.get_list('library', 'music_dirs')
        return [Path(d).expanduser() for d in dirs]

    @property
    def extensions(self) -> Set[str]:
        """Accepted file suffixes, lowercased with a leading dot."""
        exts = self.get_list('library', 'extensions', fallback=['.mp3'])
        return {ext.lower() if ext.startswith('.') else '.' + ext.lower() for ext in exts}

    @property
    def recursive(self) -> bool:
        return self.get_bool('library', 'recursive', True)

    @property
    def console_level(self) -> str:
        return self.get('logging', 'console_level', 'INFO')

    @property
    def log_dir(self) -> Path:
        """Get log directory."""
        log_dir = self.data_dir / 'logs'
        log_dir.mkdir(parents=True, exist_ok=True)
        return log_dir


# Convenience function
def get_config() -> Config:
    """Get the configuration instance."""
    return Config.get_instance()
