"""
Configuration management for the conversational media planner.
Handles planning defaults, optimization thresholds and session storage settings.
"""

import os
import streamlit as st
from typing import Optional
from dataclasses import dataclass


@dataclass
class AppConfig:
    """Application configuration settings."""
    default_budget: float = 100000.0
    default_currency: str = "USD"
    add_allocation_pct: float = 0.05
    min_add_allocation: float = 5000.0
    roas_pause_threshold: float = 2.0
    search_boost_factor: float = 1.2
    max_batch_placements: int = 10
    random_seed: Optional[int] = None
    session_cache_dir: str = ".sessions"

    def add_allocation(self, campaign_budget: float) -> float:
        """Spend target for a single added placement."""
        return max(self.min_add_allocation, campaign_budget * self.add_allocation_pct)


class ConfigManager:
    """Manages application configuration and settings."""

    def __init__(self):
        self._config: Optional[AppConfig] = None

    def load_config(self) -> AppConfig:
        """Load configuration from Streamlit secrets and the environment."""
        if self._config is not None:
            return self._config

        seed = self._get_secret_or_env("RANDOM_SEED")

        self._config = AppConfig(
            default_budget=self._get_float_setting("DEFAULT_BUDGET", 100000.0),
            default_currency=self._get_setting("DEFAULT_CURRENCY", "USD"),
            add_allocation_pct=self._get_float_setting("ADD_ALLOCATION_PCT", 0.05),
            min_add_allocation=self._get_float_setting("MIN_ADD_ALLOCATION", 5000.0),
            roas_pause_threshold=self._get_float_setting("ROAS_PAUSE_THRESHOLD", 2.0),
            search_boost_factor=self._get_float_setting("SEARCH_BOOST_FACTOR", 1.2),
            max_batch_placements=self._get_int_setting("MAX_BATCH_PLACEMENTS", 10),
            random_seed=self._get_int_setting("RANDOM_SEED", 0) if seed is not None else None,
            session_cache_dir=self._get_setting("SESSION_CACHE_DIR", ".sessions")
        )

        return self._config

    def reset(self):
        """Drop the cached configuration so the next load re-reads settings."""
        self._config = None

    def _get_secret_or_env(self, key: str) -> Optional[str]:
        """Get value from Streamlit secrets or environment variables."""
        # Try Streamlit secrets first
        try:
            if hasattr(st, 'secrets') and key in st.secrets:
                return str(st.secrets[key])
        except Exception:
            # No secrets.toml present
            pass

        # Fall back to environment variables
        return os.getenv(key)

    def _get_setting(self, key: str, default: str) -> str:
        """Get string setting with default value."""
        value = self._get_secret_or_env(key)
        return value if value is not None else default

    def _get_int_setting(self, key: str, default: int) -> int:
        """Get integer setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return int(value)
            except ValueError:
                pass
        return default

    def _get_float_setting(self, key: str, default: float) -> float:
        """Get float setting with default value."""
        value = self._get_secret_or_env(key)
        if value is not None:
            try:
                return float(value)
            except ValueError:
                pass
        return default


# Global configuration manager instance
config_manager = ConfigManager()
