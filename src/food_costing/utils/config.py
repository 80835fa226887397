"""
Configuration management for the Food Costing application.

This module handles:
- Database path and URL configuration
- REST API endpoint settings
- Environment-specific configuration (development vs. production)
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .constants import (
    DATABASE_FILENAME,
    DEFAULT_API_TIMEOUT,
    DEFAULT_API_URL,
    ENV_API_TIMEOUT,
    ENV_API_URL,
    ENV_DATABASE_URL,
    ENV_ENVIRONMENT,
)

logger = logging.getLogger(__name__)


class Config:
    """
    Application configuration manager.

    Handles database location, the REST API endpoint and environment mode.
    Environment variables override the defaults:

    - FOOD_COSTING_DATABASE_URL: full SQLAlchemy URL
    - FOOD_COSTING_API_URL: base URL of the backend REST API
    - FOOD_COSTING_API_TIMEOUT: request timeout in seconds
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment

        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_documents_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get(ENV_DATABASE_URL)

        self._api_url = os.environ.get(ENV_API_URL, DEFAULT_API_URL).rstrip("/")
        self._api_timeout = self._parse_timeout(os.environ.get(ENV_API_TIMEOUT))

    def _get_project_data_dir(self) -> Path:
        """Project data/ directory, used in development."""
        project_root = Path(__file__).parent.parent.parent.parent
        return project_root / "data"

    def _get_user_documents_dir(self) -> Path:
        """User's Documents folder with an app subdirectory, used in production."""
        return Path.home() / "Documents" / "FoodCosting"

    @staticmethod
    def _parse_timeout(raw: Optional[str]) -> float:
        if raw is None or raw.strip() == "":
            return DEFAULT_API_TIMEOUT
        try:
            timeout = float(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid {ENV_API_TIMEOUT}={raw!r}")
            return DEFAULT_API_TIMEOUT
        if timeout <= 0:
            logger.warning(f"Ignoring non-positive {ENV_API_TIMEOUT}={raw!r}")
            return DEFAULT_API_TIMEOUT
        return timeout

    def ensure_directories(self) -> None:
        """Create the database directory if it doesn't exist.

        Nothing is created when FOOD_COSTING_DATABASE_URL points elsewhere.
        """
        if self._database_url_override:
            return
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Full path to the database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        Returns:
            The FOOD_COSTING_DATABASE_URL override if set, otherwise a
            SQLite URL for database_path
        """
        if self._database_url_override:
            return self._database_url_override
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def api_url(self) -> str:
        """Base URL of the backend REST API (no trailing slash)."""
        return self._api_url

    @property
    def api_timeout(self) -> float:
        """REST request timeout in seconds."""
        return self._api_timeout

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def database_exists(self) -> bool:
        """Check if the database file exists."""
        return self._database_path.exists()

    def __repr__(self) -> str:
        return (
            f"Config(environment='{self.environment}', "
            f"database_url='{self.database_url}', api_url='{self._api_url}')"
        )


# Global configuration instance
_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument; this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    FOOD_COSTING_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_ENVIRONMENT, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton."
        )

    return _config_instance


def reset_config() -> None:
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None


def get_database_url() -> str:
    """SQLAlchemy URL of the configured database."""
    return get_config().database_url
