"""
Tests for user configuration.
"""

import json

import pytest

from mediadedup.config import CACHE_DB_FILE, DEFAULT_WORKERS, SCAN_CHUNK_SIZE
from mediadedup.user_config import ScanSettings, get_user_config, resolve_threshold


ENV_VARS = [
    'MEDIADEDUP_THRESHOLD_LEVEL',
    'MEDIADEDUP_THRESHOLD',
    'MEDIADEDUP_HISTOGRAM_THRESHOLD',
    'MEDIADEDUP_WORKERS',
    'MEDIADEDUP_CHUNK_SIZE',
    'MEDIADEDUP_INCLUDE_VIDEOS',
    'MEDIADEDUP_CACHE_DB',
]


@pytest.fixture
def config(temp_dir, monkeypatch):
    """UserConfig reading from an empty temporary directory."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('MEDIADEDUP_CONFIG_DIR', str(temp_dir / 'config'))
    user_config = get_user_config()
    user_config.reload()
    yield user_config
    user_config.reload()


def write_config(config, data):
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.config_file_path.write_text(json.dumps(data), encoding='utf-8')
    config.reload()


class TestResolveThreshold:
    """Test threshold level resolution."""

    @pytest.mark.parametrize("level,expected", [("strict", 3), ("balanced", 5), ("loose", 8)])
    def test_levels(self, level, expected):
        assert resolve_threshold(level) == expected

    def test_default_level(self):
        assert resolve_threshold() == 5

    def test_explicit_threshold_wins(self):
        assert resolve_threshold("strict", 12) == 12

    def test_level_is_case_insensitive(self):
        assert resolve_threshold("LOOSE") == 8

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            resolve_threshold("extreme")

    @pytest.mark.parametrize("value", [-1, 65])
    def test_out_of_range(self, value):
        with pytest.raises(ValueError):
            resolve_threshold(threshold=value)


class TestUserConfig:
    """Test UserConfig sources and priority."""

    def test_defaults(self, config):
        assert config.threshold_level == 'balanced'
        assert config.similarity_threshold == 5
        assert config.histogram_threshold is None
        assert config.default_workers == DEFAULT_WORKERS
        assert config.chunk_size == SCAN_CHUNK_SIZE
        assert config.include_videos is True
        assert config.cache_db_file == CACHE_DB_FILE

    def test_singleton(self, config):
        assert get_user_config() is config

    def test_config_file(self, config):
        write_config(config, {
            'threshold_level': 'strict',
            'default_workers': 2,
            'histogram_threshold': 0.8,
            'cache_db_file': '/tmp/other.db',
            'chunk_size': None,
        })
        assert config.similarity_threshold == 3
        assert config.default_workers == 2
        assert config.histogram_threshold == 0.8
        assert config.cache_db_file == '/tmp/other.db'
        assert config.chunk_size == SCAN_CHUNK_SIZE

    def test_environment_overrides_file(self, config, monkeypatch):
        write_config(config, {'threshold_level': 'strict', 'default_workers': 2})
        monkeypatch.setenv('MEDIADEDUP_THRESHOLD_LEVEL', 'loose')
        monkeypatch.setenv('MEDIADEDUP_WORKERS', '8')
        monkeypatch.setenv('MEDIADEDUP_INCLUDE_VIDEOS', 'false')

        assert config.similarity_threshold == 8
        assert config.default_workers == 8
        assert config.include_videos is False

    def test_explicit_threshold_overrides_level(self, config, monkeypatch):
        monkeypatch.setenv('MEDIADEDUP_THRESHOLD_LEVEL', 'loose')
        monkeypatch.setenv('MEDIADEDUP_THRESHOLD', '1')
        assert config.similarity_threshold == 1

    def test_invalid_file_is_ignored(self, config):
        config.config_dir.mkdir(parents=True, exist_ok=True)
        config.config_file_path.write_text("{not json", encoding='utf-8')
        config.reload()
        assert config.default_workers == DEFAULT_WORKERS

    def test_scan_settings_overrides(self, config):
        settings = config.scan_settings(threshold=9, workers=None, include_videos=False)
        assert settings == ScanSettings(
            threshold=9,
            histogram_threshold=None,
            workers=DEFAULT_WORKERS,
            chunk_size=SCAN_CHUNK_SIZE,
            include_videos=False,
        )

    def test_create_example_config(self, config):
        assert config.create_example_config()
        data = json.loads(config.config_file_path.read_text(encoding='utf-8'))
        assert data['threshold_level'] == 'balanced'

        config.reload()
        assert config.similarity_threshold == 5
        assert config.include_videos is True
