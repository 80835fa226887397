"""Tests for configuration management."""

import logging
from pathlib import Path

from food_costing.utils.config import Config, get_config, get_database_url, reset_config
from food_costing.utils.constants import DEFAULT_API_TIMEOUT, DEFAULT_API_URL


class TestConfig:
    """Tests for Config defaults and environment overrides."""

    def test_production_defaults(self):
        config = Config()
        assert config.is_production
        assert config.database_path == Path.home() / "Documents" / "FoodCosting" / "food_costing.db"
        assert config.database_url.startswith("sqlite:///")
        assert config.api_url == DEFAULT_API_URL
        assert config.api_timeout == DEFAULT_API_TIMEOUT

    def test_development_uses_project_data_dir(self):
        config = Config("development")
        assert config.is_development
        assert config.database_path.parent.name == "data"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("FOOD_COSTING_DATABASE_URL", "sqlite:///:memory:")
        assert Config().database_url == "sqlite:///:memory:"

    def test_api_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("FOOD_COSTING_API_URL", "https://api.example.com/")
        monkeypatch.setenv("FOOD_COSTING_API_TIMEOUT", "2.5")
        config = Config()
        assert config.api_url == "https://api.example.com"
        assert config.api_timeout == 2.5

    def test_invalid_timeout_falls_back(self, monkeypatch, caplog):
        monkeypatch.setenv("FOOD_COSTING_API_TIMEOUT", "soon")
        with caplog.at_level(logging.WARNING):
            assert Config().api_timeout == DEFAULT_API_TIMEOUT
        assert "FOOD_COSTING_API_TIMEOUT" in caplog.text

    def test_non_positive_timeout_falls_back(self, monkeypatch):
        monkeypatch.setenv("FOOD_COSTING_API_TIMEOUT", "0")
        assert Config().api_timeout == DEFAULT_API_TIMEOUT

    def test_repr_mentions_urls(self):
        text = repr(Config())
        assert "database_url=" in text
        assert "api_url=" in text


class TestGetConfig:
    """Tests for the configuration singleton."""

    def test_singleton(self):
        assert get_config() is get_config()

    def test_environment_from_env_var(self, monkeypatch):
        monkeypatch.setenv("FOOD_COSTING_ENV", "development")
        reset_config()
        assert get_config().environment == "development"

    def test_environment_cannot_change(self, caplog):
        first = get_config("production")
        with caplog.at_level(logging.WARNING):
            second = get_config("development")
        assert second is first
        assert second.environment == "production"
        assert "Returning existing singleton" in caplog.text

    def test_get_database_url(self, monkeypatch):
        monkeypatch.setenv("FOOD_COSTING_DATABASE_URL", "sqlite:///custom.db")
        reset_config()
        assert get_database_url() == "sqlite:///custom.db"
