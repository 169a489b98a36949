"""
User configuration management for mediadedup.

Supports configuration from multiple sources (in order of priority):
1. Runtime parameters (highest priority)
2. Environment variables
3. User config file (~/.mediadedup/config.json)
4. Default values from config.py (lowest priority)

Configuration file location: ~/.mediadedup/config.json

Example config.json:
{
    "threshold_level": "balanced",
    "similarity_threshold": null,
    "histogram_threshold": null,
    "default_workers": 4,
    "chunk_size": 100,
    "include_videos": true,
    "cache_db_file": null
}
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    CACHE_DB_FILE,
    DEFAULT_THRESHOLD_LEVEL,
    DEFAULT_WORKERS,
    SCAN_CHUNK_SIZE,
    SIMILARITY_THRESHOLDS,
)

logger = logging.getLogger(__name__)


def resolve_threshold(level: Optional[str] = None, threshold: Optional[int] = None) -> int:
    """
    Turn a threshold level name or an explicit distance into a distance.

    An explicit threshold wins over the level.

    Raises:
        ValueError: If the level is unknown or the distance is outside 0-64
    """
    if threshold is not None:
        threshold = int(threshold)
        if not 0 <= threshold <= 64:
            raise ValueError(f"Similarity threshold must be between 0 and 64, got {threshold}")
        return threshold

    level = (level or DEFAULT_THRESHOLD_LEVEL).lower()
    if level not in SIMILARITY_THRESHOLDS:
        raise ValueError(
            f"Unknown threshold level {level!r}; choose one of {', '.join(SIMILARITY_THRESHOLDS)}"
        )
    return SIMILARITY_THRESHOLDS[level]


@dataclass
class ScanSettings:
    """Tunables passed to the scan service and engines."""
    threshold: int = SIMILARITY_THRESHOLDS[DEFAULT_THRESHOLD_LEVEL]
    histogram_threshold: Optional[float] = None
    workers: int = DEFAULT_WORKERS
    chunk_size: int = SCAN_CHUNK_SIZE
    include_videos: bool = True


class UserConfig:
    """
    Manages user configuration from file and environment variables.

    Attributes are lazy-loaded and cached for performance.
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
        # Check environment variable first
        env_dir = os.getenv('MEDIADEDUP_CONFIG_DIR')
        if env_dir:
            return Path(env_dir)

        # Default to ~/.mediadedup/
        return Path.home() / '.mediadedup'

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
                logger.debug(f"Loaded configuration from {self.config_file_path}")
                return data
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load config file {self.config_file_path}: {e}")
            return {}

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
        # Check environment variable first
        if env_var:
            env_value = os.getenv(env_var)
            if env_value is not None:
                # Try to parse as JSON for complex types
                try:
                    return json.loads(env_value)
                except (json.JSONDecodeError, TypeError):
                    return env_value

        # Check config file
        config_data = self._get_config_data()
        if config_data.get(key) is not None:
            return config_data[key]

        # Return default
        return default

    @property
    def threshold_level(self) -> str:
        """Named similarity level: strict, balanced or loose."""
        return self.get(
            'threshold_level',
            default=DEFAULT_THRESHOLD_LEVEL,
            env_var='MEDIADEDUP_THRESHOLD_LEVEL'
        )

    @property
    def similarity_threshold(self) -> int:
        """Maximum Hamming distance (0-64); overrides the level when set."""
        explicit = self.get('similarity_threshold', env_var='MEDIADEDUP_THRESHOLD')
        return resolve_threshold(self.threshold_level, explicit)

    @property
    def histogram_threshold(self) -> Optional[float]:
        """Minimum histogram intersection (0-1) for images; None disables the check."""
        value = self.get('histogram_threshold', env_var='MEDIADEDUP_HISTOGRAM_THRESHOLD')
        return None if value is None else float(value)

    @property
    def default_workers(self) -> int:
        """Number of parallel hashing workers."""
        return int(self.get(
            'default_workers',
            default=DEFAULT_WORKERS,
            env_var='MEDIADEDUP_WORKERS'
        ))

    @property
    def chunk_size(self) -> int:
        """Items hashed and cached per chunk."""
        return int(self.get(
            'chunk_size',
            default=SCAN_CHUNK_SIZE,
            env_var='MEDIADEDUP_CHUNK_SIZE'
        ))

    @property
    def include_videos(self) -> bool:
        """Fingerprint videos for the similarity pass."""
        return bool(self.get(
            'include_videos',
            default=True,
            env_var='MEDIADEDUP_INCLUDE_VIDEOS'
        ))

    @property
    def cache_db_file(self) -> str:
        """Path to cache database file."""
        custom = self.get('cache_db_file', env_var='MEDIADEDUP_CACHE_DB')
        if custom:
            return custom
        return CACHE_DB_FILE

    def scan_settings(self, **overrides) -> ScanSettings:
        """
        Build ScanSettings from this configuration.

        Runtime overrides whose value is None are ignored.
        """
        settings = ScanSettings(
            threshold=self.similarity_threshold,
            histogram_threshold=self.histogram_threshold,
            workers=self.default_workers,
            chunk_size=self.chunk_size,
            include_videos=self.include_videos,
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(settings, key, value)
        return settings

    def create_example_config(self):
        """Create an example configuration file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        example_config = {
            "_comment": "mediadedup user configuration",
            "threshold_level": DEFAULT_THRESHOLD_LEVEL,
            "similarity_threshold": None,
            "histogram_threshold": None,
            "default_workers": DEFAULT_WORKERS,
            "chunk_size": SCAN_CHUNK_SIZE,
            "include_videos": True,
            "cache_db_file": None,
        }

        try:
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
            logger.info(f"Created example config file at {self.config_file_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False


# Global instance
_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config


__all__ = [
    'ScanSettings',
    'UserConfig',
    'get_user_config',
    'resolve_threshold',
]
