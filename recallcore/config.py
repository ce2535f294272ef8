"""
Centralized configuration management for recallcore.
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_default_db_path() -> Path:
    """Returns the default path for the database file."""
    return Path.home() / ".recallcore" / "recall.db"


class Settings(BaseSettings):
    """
    Defines application settings, loaded from environment variables or .env files.
    """
    model_config = SettingsConfigDict(
        env_prefix="RECALLCORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Overridden by RECALLCORE_DB_PATH.
    db_path: Path = get_default_db_path()

    # YAML file used to seed the stored parameter set on first use.
    # Defaults are used when unset.
    parameters_file: Optional[Path] = None

    # When True, disables safety checks that prevent data loss during tests.
    # Should NEVER be enabled in production. Can be set via RECALLCORE_TESTING_MODE.
    testing_mode: bool = False


# Create a singleton instance of the settings
settings = Settings()
