"""
Configuration management for Portfolio Tools.

This module centralizes environment variable loading from .env file at project root.
It should be imported early in both backend (api/main.py) and frontend (streamlit_app/app.py)
to ensure .env is loaded before any other code accesses environment variables.

In production .env will not exist; load_dotenv() is safe to call and will no-op,
and the platform environment variables are used instead.

Environment Variables:
- USDA_API_KEY: Optional, FoodData Central API key (defaults to "DEMO_KEY")
- USDA_BASE_URL: Optional, defaults to "https://api.nal.usda.gov/fdc/v1"
- OPENFOODFACTS_BASE_URL: Optional, defaults to "https://world.openfoodfacts.net"
- FOOD_API_TIMEOUT: Optional, timeout in seconds for food API calls (default: 10)
- DATA_DIR: Optional, directory for the JSON key-value store (default: ".data")
- DATABASE_URL: Optional, enables the SQL-backed key-value store
- BACKEND_URL: Optional, backend URL (defaults to http://localhost:8000 for local dev)
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env_file() -> None:
    """
    Load environment variables from .env file at project root.

    The project root is found by going up from this file's location
    (api/config.py -> project root). Existing environment variables take
    precedence over values in .env.
    """
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env", override=False)


# Load .env file on module import
load_env_file()


class UsdaConfig:
    """Configuration for the USDA FoodData Central connector."""

    @staticmethod
    def get_api_key() -> str:
        """
        Get the FoodData Central API key.

        Returns:
            API key string (default: "DEMO_KEY", which is rate limited by USDA)
        """
        return os.getenv("USDA_API_KEY", "DEMO_KEY")

    @staticmethod
    def get_base_url() -> str:
        """Get the FoodData Central base URL without trailing slash."""
        return os.getenv("USDA_BASE_URL", "https://api.nal.usda.gov/fdc/v1").rstrip("/")


class OpenFoodFactsConfig:
    """Configuration for the Open Food Facts connector."""

    @staticmethod
    def get_base_url() -> str:
        """Get the Open Food Facts base URL without trailing slash."""
        return os.getenv("OPENFOODFACTS_BASE_URL", "https://world.openfoodfacts.net").rstrip("/")


def get_food_api_timeout() -> float:
    """
    Get the timeout (seconds) used for outbound food API requests.

    Invalid values fall back to 10 seconds.
    """
    raw = os.getenv("FOOD_API_TIMEOUT", "10")
    try:
        timeout = float(raw)
    except ValueError:
        return 10.0
    return timeout if timeout > 0 else 10.0


class StorageConfig:
    """Configuration for the key-value store."""

    @staticmethod
    def get_data_dir() -> Path:
        """
        Get the directory used by the JSON file store.

        Returns:
            Path (default: ".data" relative to the working directory)
        """
        return Path(os.getenv("DATA_DIR", ".data"))

    @staticmethod
    def get_database_url() -> Optional[str]:
        """
        Get the database URL for the SQL-backed store.

        Returns:
            Database URL string or None if not set
        """
        return os.getenv("DATABASE_URL") or None


def get_required_env_vars() -> dict:
    """
    Get a dictionary of optional integrations and whether they are configured.

    Returns:
        Dictionary with keys:
        - usda_api_key: bool (True if a non-demo key is set)
        - database_url: bool (True if set)
    """
    return {
        "usda_api_key": UsdaConfig.get_api_key() != "DEMO_KEY",
        "database_url": StorageConfig.get_database_url() is not None,
    }
