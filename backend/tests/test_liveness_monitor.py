"""
Liveness sweep tests.
"""

import asyncio

import pytest

from service.liveness_monitor import LivenessMonitor


def make_monitor(repository, instance_client):
    return LivenessMonitor(repository, instance_client, wall_clock=lambda: 5000)


class TestLivenessSweep:
    @pytest.mark.asyncio
    async def test_unhealthy_instance_marked_offline_once(
        self, repository, instance_client
    ):
        repository.add_instance("a", "10.0.0.1")
        repository.add_instance("b", "10.0.0.2")
        instance_client.healthy = {"10.0.0.1": True, "10.0.0.2": False}
        monitor = make_monitor(repository, instance_client)

        summary = await monitor.sweep()

        assert summary == {"checked": 2, "offline": 1}
        assert repository.instances["a"]["status"] == "online"
        assert repository.instances["b"]["status"] == "offline"
        assert repository.instances["b"]["lastUpdated"] == 5000
        assert repository.offline_writes == ["b"]

        # The next sweep no longer probes the offline instance
        summary = await monitor.sweep()
        assert summary == {"checked": 1, "offline": 0}
        assert repository.offline_writes == ["b"]

    @pytest.mark.asyncio
    async def test_offline_snapshot_is_not_rewritten(self, repository, instance_client):
        repository.add_instance("a", "10.0.0.1", status="offline")
        monitor = make_monitor(repository, instance_client)

        changed = await monitor._check_instance(
            {"instanceId": "a", "ipAddress": "10.0.0.1", "status": "offline"}
        )

        assert changed is False
        assert repository.offline_writes == []

    @pytest.mark.asyncio
    async def test_one_failing_probe_does_not_abort_the_sweep(
        self, repository, instance_client
    ):
        repository.add_instance("a", "10.0.0.1")
        repository.add_instance("b", "10.0.0.2")

        async def flaky_health(instance_id, ip_address):
            if instance_id == "a":
                raise RuntimeError("probe exploded")
            return False

        instance_client.check_health = flaky_health
        monitor = make_monitor(repository, instance_client)

        summary = await monitor.sweep()

        assert summary == {"checked": 2, "offline": 1}
        assert repository.instances["a"]["status"] == "online"
        assert repository.instances["b"]["status"] == "offline"

    @pytest.mark.asyncio
    async def test_store_failure_is_logged_not_raised(
        self, repository, instance_client
    ):
        async def broken_list(status=None):
            raise RuntimeError("database gone")

        repository.list_instances = broken_list
        monitor = make_monitor(repository, instance_client)

        assert await monitor.sweep() == {"checked": 0, "offline": 0}

    @pytest.mark.asyncio
    async def test_overlapping_sweep_is_skipped(self, repository, instance_client):
        repository.add_instance("a", "10.0.0.1")
        release = asyncio.Event()

        async def slow_health(instance_id, ip_address):
            await release.wait()
            return True

        instance_client.check_health = slow_health
        monitor = make_monitor(repository, instance_client)

        first = asyncio.create_task(monitor.sweep())
        await asyncio.sleep(0)
        second = await monitor.sweep()
        release.set()

        assert second == {"checked": 0, "offline": 0}
        assert await first == {"checked": 1, "offline": 0}
