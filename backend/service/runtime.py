"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from db.db_config import MySqlSettings, get_settings
from db.mysql import build_engine, build_session_factory, create_tables
from db.repository import FleetRepository
from service.dispatcher import CommandDispatcher
from service.health_poller import HealthPollerRegistry
from service.instance_client import InstanceClient
from service.liveness_monitor import LivenessMonitor
from utils.controller_settings import ControllerSettings, get_controller_settings
from utils.error_handler import ErrorMessages, ErrorResponse
from utils.logger import logger


@dataclass
class ControllerRuntime:
    """
    Process-wide handles shared by every request and background loop.

    Built once at startup and injected through ``get_runtime``; tests build
    one around in-memory fakes instead.
    """

    repository: object
    client: object
    settings: ControllerSettings
    dispatcher: CommandDispatcher = field(init=False)
    health_pollers: HealthPollerRegistry = field(init=False)
    liveness_monitor: LivenessMonitor = field(init=False)
    engine: Optional[object] = None
    _monitor_task: Optional[asyncio.Task] = field(default=None, init=False)

    def __post_init__(self):
        self.dispatcher = CommandDispatcher(self.repository, self.client)
        self.health_pollers = HealthPollerRegistry(
            self.repository,
            self.client,
            interval_seconds=self.settings.HEALTH_POLL_INTERVAL_SECONDS,
        )
        self.liveness_monitor = LivenessMonitor(
            self.repository,
            self.client,
            interval_seconds=self.settings.LIVENESS_INTERVAL_SECONDS,
        )

    def start_background(self) -> None:
        if self.settings.LIVENESS_MONITOR_ENABLED and self._monitor_task is None:
            self._monitor_task = asyncio.create_task(
                self.liveness_monitor.run_forever(), name="liveness-monitor"
            )

    async def shutdown(self) -> None:
        if self._monitor_task is not None:
            self._monitor_task.cancel()
            await asyncio.gather(self._monitor_task, return_exceptions=True)
            self._monitor_task = None
        await self.health_pollers.close()
        if hasattr(self.client, "aclose"):
            await self.client.aclose()
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database engine disposed successfully.")


async def build_runtime(
    db_settings: Optional[MySqlSettings] = None,
    settings: Optional[ControllerSettings] = None,
) -> ControllerRuntime:
    """Connect the record store and HTTP client for a live process."""
    db_settings = db_settings or get_settings()
    settings = settings or get_controller_settings()
    engine = build_engine(db_settings)
    if db_settings.DB_CREATE_TABLES:
        await create_tables(engine)
    repository = FleetRepository(build_session_factory(engine))
    return ControllerRuntime(
        repository=repository,
        client=InstanceClient(settings),
        settings=settings,
        engine=engine,
    )


def get_runtime(request: Request) -> ControllerRuntime:
    """FastAPI dependency returning the runtime built at startup."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise ErrorResponse.service_unavailable(ErrorMessages.RUNTIME_NOT_READY)
    return runtime
