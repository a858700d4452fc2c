"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

# Resolve project directories so .env can be found regardless of cwd
BACKEND_DIR = Path(__file__).resolve().parent.parent
ENV_FILE_PATH = BACKEND_DIR / ".env"


class ControllerSettings(BaseSettings):
    """
    Timing and addressing settings for talking to workers and campaign targets.
    """

    # Liveness sweep over registered workers
    LIVENESS_MONITOR_ENABLED: bool = True
    LIVENESS_INTERVAL_SECONDS: float = 60.0
    LIVENESS_TIMEOUT_SECONDS: float = 10.0

    # Target reachability sampling while a campaign runs
    HEALTH_POLL_INTERVAL_SECONDS: float = 5.0
    HEALTH_PROBE_TIMEOUT_SECONDS: float = 60.0
    HEALTH_PROBE_MAX_REDIRECTS: int = 5

    # Directive delivery
    DIRECTIVE_TIMEOUT_SECONDS: float = 30.0

    # Worker addressing: <scheme>://<ip>[:<port>]<path>
    INSTANCE_SCHEME: str = "http"
    INSTANCE_PORT: Optional[int] = None
    INSTANCE_HEALTH_PATH: str = "/health"
    INSTANCE_COMMAND_PATH: str = "/command"

    # Process name workers report their captured output under
    WORKER_PROCESS_ID: str = "ATK"

    ALLOWED_ORIGINS: Optional[str] = None

    class Config:
        env_file = str(ENV_FILE_PATH)
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_controller_settings() -> ControllerSettings:
    """
    Return cached controller settings.
    """

    return ControllerSettings()
