"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import asyncio
from typing import Any, Callable, Dict

from config.business import INSTANCE_STATUS_OFFLINE, INSTANCE_STATUS_ONLINE
from utils.converters import now_ms
from utils.logger import logger


class LivenessMonitor:
    """
    Periodic sweep that demotes unreachable online instances to offline.

    A sweep never raises: probe and store failures are logged per instance.
    Sweeps never overlap; a tick that finds the previous sweep still running
    is skipped.
    """

    def __init__(
        self,
        repository,
        client,
        interval_seconds: float = 60.0,
        wall_clock: Callable[[], int] = now_ms,
    ):
        self.repository = repository
        self.client = client
        self.interval_seconds = interval_seconds
        self._wall_clock = wall_clock
        self._lock = asyncio.Lock()

    async def _check_instance(self, instance: Dict[str, Any]) -> bool:
        """Probe one instance; returns True when it was demoted in this sweep."""
        instance_id = instance["instanceId"]
        is_available = await self.client.check_health(
            instance_id, instance.get("ipAddress") or ""
        )
        if is_available or instance.get("status") == INSTANCE_STATUS_OFFLINE:
            return False

        changed = await self.repository.mark_instance_offline(
            instance_id, self._wall_clock()
        )
        if changed:
            logger.info("Instance {} marked as offline", instance_id)
        return changed

    async def sweep(self) -> Dict[str, int]:
        """Probe every online instance once and return ``{checked, offline}``."""
        summary = {"checked": 0, "offline": 0}
        if self._lock.locked():
            logger.warning("Previous liveness sweep still running, skipping this tick.")
            return summary

        async with self._lock:
            try:
                instances = await self.repository.list_instances(
                    status=INSTANCE_STATUS_ONLINE
                )
            except Exception as e:
                logger.exception("Error in monitor instances sweep: {}", e)
                return summary

            outcomes = await asyncio.gather(
                *(self._check_instance(instance) for instance in instances),
                return_exceptions=True,
            )
            summary["checked"] = len(instances)
            for instance, outcome in zip(instances, outcomes):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "Liveness check failed for instance {}: {}",
                        instance.get("instanceId"),
                        outcome,
                    )
                elif outcome:
                    summary["offline"] += 1
        return summary

    async def run_forever(self) -> None:
        """Sweep, then wait one interval, until cancelled."""
        logger.info(
            "Liveness monitor started, sweeping every {}s.", self.interval_seconds
        )
        while True:
            logger.debug("Running instance availability check...")
            summary = await self.sweep()
            if summary["offline"]:
                logger.info(
                    "Liveness sweep: {} checked, {} marked offline.",
                    summary["checked"],
                    summary["offline"],
                )
            await asyncio.sleep(self.interval_seconds)
