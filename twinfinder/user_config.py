"""
User configuration management for TwinFinder.

Supports configuration from multiple sources (in order of priority):
1. Runtime parameters (highest priority)
2. Environment variables
3. User config file (~/.twinfinder/config.json)
4. Default values from config.py (lowest priority)

These values only seed the CLI and API defaults. The analysis core takes
every setting as an explicit argument on each call.

Example config.json:
{
    "default_threshold": 0.7,
    "default_workers": 4,
    "default_strategy": "hash",
    "hash_algorithm": "block",
    "ignored_folder_name": "thumb",
    "top_level_only": false,
    "progress_interval": 0.1
}
"""

import json
import os
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    DEFAULT_THRESHOLD,
    DEFAULT_WORKERS,
    DEFAULT_STRATEGY,
    DEFAULT_HASH_ALGORITHM,
    DEFAULT_IGNORED_FOLDER,
    PROGRESS_UPDATE_INTERVAL,
)

logger = logging.getLogger(__name__)


class UserConfig:
    """
    Manages user configuration from file and environment variables.

    File contents are lazy-loaded and cached until reload() is called.
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    def __new__(cls):
        """Singleton pattern to ensure one config instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory path."""
        env_dir = os.getenv('TWINFINDER_CONFIG_DIR')
        if env_dir:
            return Path(env_dir)
        return Path.home() / '.twinfinder'

    @property
    def config_file_path(self) -> Path:
        """Get the configuration file path."""
        return self.config_dir / 'config.json'

    def _load_config_file(self) -> dict:
        """Load configuration from JSON file."""
        if not self.config_file_path.exists():
            return {}

        try:
            with open(self.config_file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load config file {self.config_file_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_file_path}: expected a JSON object")
            return {}

        logger.debug(f"Loaded configuration from {self.config_file_path}")
        return data

    def _get_config_data(self) -> dict:
        """Get cached config data (lazy loading)."""
        if self._config_data is None:
            self._config_data = self._load_config_file()
        return self._config_data

    def reload(self):
        """Reload configuration from file."""
        self._config_data = None

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """
        Get a configuration value with priority:
        1. Environment variable (if env_var specified)
        2. Config file
        3. Default value

        Args:
            key: Configuration key
            default: Default value if not found
            env_var: Optional environment variable name to check

        Returns:
            Configuration value
        """
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                # JSON parsing turns "0.8" and "true" into real types
                try:
                    return json.loads(env_value)
                except (json.JSONDecodeError, TypeError):
                    return env_value

        config_data = self._get_config_data()
        if key in config_data:
            return config_data[key]

        return default

    @property
    def default_threshold(self) -> float:
        """Similarity threshold (0.0-1.0)."""
        return float(self.get(
            'default_threshold',
            default=DEFAULT_THRESHOLD,
            env_var='TWINFINDER_THRESHOLD'
        ))

    @property
    def default_workers(self) -> int:
        """Number of parallel workers for fingerprint extraction."""
        return int(self.get(
            'default_workers',
            default=DEFAULT_WORKERS,
            env_var='TWINFINDER_WORKERS'
        ))

    @property
    def default_strategy(self) -> str:
        """Fingerprint strategy name ('hash' or 'embedding')."""
        return str(self.get(
            'default_strategy',
            default=DEFAULT_STRATEGY,
            env_var='TWINFINDER_STRATEGY'
        ))

    @property
    def hash_algorithm(self) -> str:
        """Structural hash algorithm used by the 'hash' strategy."""
        return str(self.get(
            'hash_algorithm',
            default=DEFAULT_HASH_ALGORITHM,
            env_var='TWINFINDER_HASH_ALGORITHM'
        ))

    @property
    def ignored_folder_name(self) -> str:
        """Directory name pruned from every scan (empty string disables)."""
        value = self.get(
            'ignored_folder_name',
            default=DEFAULT_IGNORED_FOLDER,
            env_var='TWINFINDER_IGNORED_FOLDER'
        )
        return '' if value is None else str(value)

    @property
    def top_level_only(self) -> bool:
        """Compare each leaf folder only against itself."""
        return bool(self.get(
            'top_level_only',
            default=False,
            env_var='TWINFINDER_TOP_LEVEL_ONLY'
        ))

    @property
    def progress_interval(self) -> float:
        """Minimum seconds between progress notifications."""
        return float(self.get(
            'progress_interval',
            default=PROGRESS_UPDATE_INTERVAL,
            env_var='TWINFINDER_PROGRESS_INTERVAL'
        ))

    def to_dict(self) -> dict:
        """Return the effective settings."""
        return {
            'default_threshold': self.default_threshold,
            'default_workers': self.default_workers,
            'default_strategy': self.default_strategy,
            'hash_algorithm': self.hash_algorithm,
            'ignored_folder_name': self.ignored_folder_name,
            'top_level_only': self.top_level_only,
            'progress_interval': self.progress_interval,
        }

    def create_example_config(self) -> bool:
        """Create an example configuration file."""
        example_config = {
            "_comment": "TwinFinder User Configuration",
            "default_threshold": DEFAULT_THRESHOLD,
            "default_workers": DEFAULT_WORKERS,
            "default_strategy": DEFAULT_STRATEGY,
            "hash_algorithm": DEFAULT_HASH_ALGORITHM,
            "ignored_folder_name": DEFAULT_IGNORED_FOLDER,
            "top_level_only": False,
            "progress_interval": PROGRESS_UPDATE_INTERVAL,
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False

        logger.info(f"Created example config file at {self.config_file_path}")
        self.reload()
        return True


# Global instance
_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
