"""
Tests for configuration loading.
"""

import pytest

from config.settings import AppConfig, ConfigManager

SETTING_KEYS = (
    "DEFAULT_BUDGET", "DEFAULT_CURRENCY", "ADD_ALLOCATION_PCT", "MIN_ADD_ALLOCATION",
    "ROAS_PAUSE_THRESHOLD", "SEARCH_BOOST_FACTOR", "MAX_BATCH_PLACEMENTS",
    "RANDOM_SEED", "SESSION_CACHE_DIR",
)


@pytest.fixture
def manager(monkeypatch):
    for key in SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)
    return ConfigManager()


class TestConfigManager:
    """Test cases for ConfigManager."""

    def test_defaults(self, manager):
        assert manager.load_config() == AppConfig()

    def test_environment_overrides(self, manager, monkeypatch):
        monkeypatch.setenv("ROAS_PAUSE_THRESHOLD", "1.5")
        monkeypatch.setenv("MAX_BATCH_PLACEMENTS", "5")
        monkeypatch.setenv("RANDOM_SEED", "7")
        monkeypatch.setenv("SESSION_CACHE_DIR", "/tmp/plans")

        config = manager.load_config()

        assert config.roas_pause_threshold == 1.5
        assert config.max_batch_placements == 5
        assert config.random_seed == 7
        assert config.session_cache_dir == "/tmp/plans"

    def test_invalid_values_fall_back(self, manager, monkeypatch):
        monkeypatch.setenv("MAX_BATCH_PLACEMENTS", "lots")
        monkeypatch.setenv("SEARCH_BOOST_FACTOR", "big")

        config = manager.load_config()

        assert config.max_batch_placements == 10
        assert config.search_boost_factor == 1.2

    def test_config_is_cached_until_reset(self, manager, monkeypatch):
        first = manager.load_config()
        monkeypatch.setenv("DEFAULT_BUDGET", "250000")

        assert manager.load_config() is first

        manager.reset()
        assert manager.load_config().default_budget == 250000.0

    def test_add_allocation(self, manager):
        config = manager.load_config()
        assert config.add_allocation(500000) == pytest.approx(25000)
        assert config.add_allocation(20000) == 5000.0

    def test_add_allocation_follows_environment(self, manager, monkeypatch):
        monkeypatch.setenv("ADD_ALLOCATION_PCT", "0.1")
        monkeypatch.setenv("MIN_ADD_ALLOCATION", "1000")

        config = manager.load_config()

        assert config.add_allocation(500000) == pytest.approx(50000)
        assert config.add_allocation(5000) == 1000.0
