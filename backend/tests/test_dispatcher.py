"""
Directive fan-out tests.
"""

import httpx
import pytest

from service.dispatcher import CommandDispatcher, Directive


def online(repository, *ids):
    for index, instance_id in enumerate(ids, start=1):
        repository.add_instance(instance_id, f"10.0.0.{index}")


def test_directive_payload_drops_unset_fields():
    stop = Directive(action="stop", processId="ATK", campaign="campaign-1")
    assert stop.to_payload() == {
        "action": "stop",
        "processId": "ATK",
        "campaign": "campaign-1",
    }
    assert stop.success_status == "stopped"
    assert Directive(action="start", processId="ATK").success_status == "running"


class TestCommandDispatcher:
    @pytest.mark.asyncio
    async def test_partial_failure_is_counted_per_instance(
        self, repository, instance_client
    ):
        online(repository, "a", "b", "c")
        instance_client.directive_errors["10.0.0.2"] = httpx.ReadTimeout("timed out")
        dispatcher = CommandDispatcher(repository, instance_client)
        directive = Directive(
            action="start",
            processId="ATK",
            command="run --layer 4",
            duration=30,
            campaign="campaign-1",
        )

        report = await dispatcher.dispatch(
            "campaign-1", directive, await repository.list_instances()
        )

        assert report.successful == 2
        assert report.failed == 1
        assert report.total == 3
        statuses = {r.instanceId: r.status for r in report.results}
        assert statuses == {"a": "running", "b": "failed", "c": "running"}
        failed = next(r for r in report.results if r.instanceId == "b")
        assert failed.error.startswith("Request timeout")

        participants = repository.participations["campaign-1"]
        assert sorted(participants) == ["a", "b", "c"]
        assert participants["b"]["status"] == "failed"
        assert len(repository.participation_writes) == 3
        assert len(instance_client.directives) == 3
        assert instance_client.directives[0][1]["command"] == "run --layer 4"

    @pytest.mark.asyncio
    async def test_repeated_dispatch_updates_rows_in_place(
        self, repository, instance_client
    ):
        online(repository, "a", "b")
        dispatcher = CommandDispatcher(repository, instance_client)
        instances = await repository.list_instances()

        await dispatcher.dispatch(
            "campaign-1", Directive(action="start", processId="ATK"), instances
        )
        await dispatcher.dispatch(
            "campaign-1", Directive(action="stop", processId="ATK"), instances
        )

        participants = repository.participations["campaign-1"]
        assert len(participants) == 2
        assert {p["status"] for p in participants.values()} == {"stopped"}

    @pytest.mark.asyncio
    async def test_empty_instance_list(self, repository, instance_client):
        dispatcher = CommandDispatcher(repository, instance_client)
        report = await dispatcher.dispatch(
            "campaign-1", Directive(action="stop", processId="ATK"), []
        )

        assert (report.successful, report.failed, report.total) == (0, 0, 0)
        assert report.results == []
