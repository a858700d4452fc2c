"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import os
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve project directories so .env can be found regardless of cwd
BACKEND_DIR = Path(__file__).resolve().parent.parent
ENV_FILE_PATH = BACKEND_DIR / ".env"


class MySqlSettings(BaseSettings):
    """
    Defines the connection settings of the record store.
    It reads configuration from environment variables or a .env file.
    """

    DB_USER: str = os.environ.get("DB_USER", "fleetpulse_user")
    DB_PASSWORD: str = os.environ.get("DB_PASSWORD", "fleetpulse_password")
    DB_HOST: str = os.environ.get("DB_HOST", "localhost")
    DB_PORT: int = int(os.environ.get("DB_PORT", 3306))
    DB_NAME: str = os.environ.get("DB_NAME", "fleetpulse")

    # Connection pool settings
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    # Recycle connections before common firewall/RDS idle timeouts
    DB_POOL_RECYCLE: int = 240

    # Create missing tables on startup
    DB_CREATE_TABLES: bool = True

    class Config:
        """
        Pydantic settings configuration.
        """

        env_file = str(ENV_FILE_PATH)
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> MySqlSettings:
    """
    Get the record store settings.

    Cached so the environment is read once per process.

    Returns:
        MySqlSettings: An instance of the MySqlSettings class.
    """
    return MySqlSettings()
