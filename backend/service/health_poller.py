"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, Set, Tuple

from utils.converters import now_ms
from utils.logger import logger

PollerKey = Tuple[str, str]


class TargetHealthPoller:
    """
    Samples one campaign target's reachability until the campaign window ends.

    The loop state is ``end_time``, ``next_fire_time`` and the shared in-flight
    set. Each tick probes at most once per (target, campaign) and the wait
    before the next tick is shortened by the probe's own duration, never below
    zero. Clocks are injectable so the cadence can be driven in tests.
    """

    def __init__(
        self,
        repository,
        client,
        target: str,
        campaign_id: str,
        duration_seconds: float,
        interval_seconds: float = 5.0,
        in_flight: Optional[Set[PollerKey]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        wall_clock: Callable[[], int] = now_ms,
    ):
        self.repository = repository
        self.client = client
        self.target = target
        self.campaign_id = campaign_id
        self.duration_seconds = duration_seconds
        self.interval_seconds = interval_seconds
        self.in_flight = in_flight if in_flight is not None else set()
        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock
        self.end_time: Optional[float] = None
        self.next_fire_time: Optional[float] = None
        self.probes = 0
        self.skipped = 0
        self.log = logger.bind(campaign_id=campaign_id)

    @property
    def key(self) -> PollerKey:
        return (self.target, self.campaign_id)

    async def _probe_once(self) -> None:
        timestamp = self._wall_clock()
        result = await self.client.probe_target(self.target)
        record = {
            "target": self.target,
            "campaignId": self.campaign_id,
            "timestamp": timestamp,
            **result,
        }
        self.probes += 1
        try:
            await self.repository.add_health_check(record)
        except Exception as e:
            self.log.error("Failed to store health check for {}: {}", self.target, e)
        if not result.get("isAlive"):
            self.log.warning(
                "Target {} unreachable: {}", self.target, result.get("error")
            )

    async def tick(self) -> bool:
        """
        Run one tick. Returns False once the window has elapsed.
        """
        tick_start = self._clock()
        if tick_start >= self.end_time:
            return False

        if self.key in self.in_flight:
            self.skipped += 1
            self.log.info(
                "Health probe for {} still in flight, skipping tick.", self.target
            )
        else:
            self.in_flight.add(self.key)
            try:
                await self._probe_once()
            finally:
                self.in_flight.discard(self.key)

        now = self._clock()
        if now >= self.end_time:
            return False
        delay = max(self.interval_seconds - (now - tick_start), 0.0)
        self.next_fire_time = now + delay
        return True

    async def run(self) -> int:
        """Poll until the window closes; returns the number of probes issued."""
        start = self._clock()
        self.end_time = start + self.duration_seconds
        self.next_fire_time = start
        self.log.info(
            "Health polling of {} started for {}s every {}s.",
            self.target,
            self.duration_seconds,
            self.interval_seconds,
        )
        while await self.tick():
            await self._sleep(max(self.next_fire_time - self._clock(), 0.0))
        self.log.info(
            "Health polling of {} finished after {} probes.", self.target, self.probes
        )
        return self.probes


class HealthPollerRegistry:
    """
    Launches health pollers as background tasks and keeps them referenced.

    Pollers are fire-and-forget; they end on their own when their window
    closes. ``close`` cancels the remaining ones on application shutdown.
    """

    def __init__(self, repository, client, interval_seconds: float = 5.0):
        self.repository = repository
        self.client = client
        self.interval_seconds = interval_seconds
        self.in_flight: Set[PollerKey] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> int:
        return len(self._tasks)

    def launch(
        self, target: str, campaign_id: str, duration_seconds: float
    ) -> asyncio.Task:
        poller = TargetHealthPoller(
            self.repository,
            self.client,
            target,
            campaign_id,
            duration_seconds,
            interval_seconds=self.interval_seconds,
            in_flight=self.in_flight,
        )
        task = asyncio.create_task(
            poller.run(), name=f"health-poller-{campaign_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Health poller {} crashed: {}", task.get_name(), exc)

    async def close(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
