"""
Shared pytest configuration and in-memory fakes for backend tests.
"""

import copy
import itertools
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Ensure tests run in test mode
os.environ.setdefault("TESTING", "1")

# Make the backend modules importable when tests run from repository root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from service.runtime import ControllerRuntime  # noqa: E402
from utils.controller_settings import ControllerSettings  # noqa: E402


class InMemoryRepository:
    """Dict-backed stand-in for FleetRepository with the same contract."""

    def __init__(self):
        self.instances: Dict[str, Dict[str, Any]] = {}
        self.campaigns: Dict[str, Dict[str, Any]] = {}
        self.participations: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.logs: List[Dict[str, Any]] = []
        self.health_checks: List[Dict[str, Any]] = []
        self.offline_writes: List[str] = []
        self.participation_writes: List[tuple] = []
        self._ids = itertools.count(1)

    def add_instance(self, instance_id, ip_address, status="online", **extra):
        self.instances[instance_id] = {
            "instanceId": instance_id,
            "ipAddress": ip_address,
            "region": extra.get("region", "eu"),
            "status": status,
            "lastSeen": extra.get("lastSeen", 1),
            "lastUpdated": None,
            "rps": 0,
            "gps": 0,
        }

    async def upsert_instance(self, record):
        current = self.instances.get(record["instanceId"], {})
        merged = {**current, **record}
        merged["lastSeen"] = max(current.get("lastSeen", 0), record["lastSeen"])
        merged.setdefault("lastUpdated", None)
        self.instances[record["instanceId"]] = merged

    async def get_instance(self, instance_id):
        instance = self.instances.get(instance_id)
        return copy.deepcopy(instance) if instance else None

    async def list_instances(self, status=None):
        return [
            copy.deepcopy(i)
            for _, i in sorted(self.instances.items())
            if status is None or i["status"] == status
        ]

    async def update_instance_metrics(self, instance_id, last_seen, rps=None, gps=None):
        instance = self.instances.get(instance_id)
        if instance is None:
            return False
        instance["lastSeen"] = max(instance["lastSeen"], last_seen)
        if rps is not None:
            instance["rps"] = rps
        if gps is not None:
            instance["gps"] = gps
        return True

    async def mark_instance_offline(self, instance_id, timestamp):
        instance = self.instances.get(instance_id)
        if instance is None or instance["status"] == "offline":
            return False
        instance["status"] = "offline"
        instance["lastUpdated"] = timestamp
        self.offline_writes.append(instance_id)
        return True

    async def create_campaign(self, record):
        campaign_id = f"campaign-{next(self._ids)}"
        self.campaigns[campaign_id] = {
            **record,
            "id": campaign_id,
            "error": None,
            "endTime": None,
        }
        self.participations[campaign_id] = {}
        return campaign_id

    async def get_campaign(self, campaign_id):
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            return None
        return {
            **copy.deepcopy(campaign),
            "instances": copy.deepcopy(self.participations.get(campaign_id, {})),
        }

    async def list_campaigns(self, status=None, limit=50):
        ids = [
            cid
            for cid, c in self.campaigns.items()
            if status is None or c["status"] == status
        ]
        return [await self.get_campaign(cid) for cid in ids[:limit]]

    async def update_campaign(self, campaign_id, **fields):
        self.campaigns[campaign_id].update(fields)

    async def upsert_participation(
        self, campaign_id, instance_id, status, ip_address=None, error=None
    ):
        self.participation_writes.append((campaign_id, instance_id, status))
        entries = self.participations.setdefault(campaign_id, {})
        previous = entries.get(instance_id, {})
        entries[instance_id] = {
            "instanceId": instance_id,
            "ipAddress": ip_address or previous.get("ipAddress"),
            "status": status,
            "error": error,
        }

    async def add_logs(self, records):
        self.logs.extend(copy.deepcopy(records))
        return len(records)

    async def query_logs(self, campaign_id=None, start_time=None, end_time=None):
        return [
            r
            for r in sorted(self.logs, key=lambda r: r["servertime"])
            if (campaign_id is None or r.get("campaignId") == campaign_id)
            and (start_time is None or r["servertime"] >= start_time)
            and (end_time is None or r["servertime"] <= end_time)
        ]

    async def add_health_check(self, record):
        self.health_checks.append(dict(record))

    async def query_health_checks(self, campaign_id=None, start_time=None, end_time=None):
        return [
            r
            for r in sorted(self.health_checks, key=lambda r: r["timestamp"])
            if (campaign_id is None or r.get("campaignId") == campaign_id)
            and (start_time is None or r["timestamp"] >= start_time)
            and (end_time is None or r["timestamp"] <= end_time)
        ]


class FakeInstanceClient:
    """Records outbound calls; per-IP behaviour is configured by the test."""

    def __init__(self):
        self.healthy: Dict[str, bool] = {}
        self.directive_errors: Dict[str, Exception] = {}
        self.health_calls: List[str] = []
        self.directives: List[tuple] = []
        self.probe_result: Dict[str, Any] = {
            "isAlive": True,
            "responseTime": 12.5,
            "httpStatus": 200,
            "error": None,
            "timeout": False,
        }
        self.probed: List[str] = []

    async def check_health(self, instance_id, ip_address):
        self.health_calls.append(instance_id)
        return self.healthy.get(ip_address, False)

    async def send_directive(self, ip_address, payload):
        self.directives.append((ip_address, payload))
        error = self.directive_errors.get(ip_address)
        if error is not None:
            raise error

    async def probe_target(self, target):
        self.probed.append(target)
        return dict(self.probe_result)


class FakePollerRegistry:
    def __init__(self):
        self.launched: List[tuple] = []

    def launch(self, target, campaign_id, duration_seconds):
        self.launched.append((target, campaign_id, duration_seconds))

    async def close(self):
        return None


@pytest.fixture
def repository():
    return InMemoryRepository()


@pytest.fixture
def instance_client():
    return FakeInstanceClient()


@pytest.fixture
def controller_settings():
    return ControllerSettings(LIVENESS_MONITOR_ENABLED=False)


@pytest.fixture
def runtime(repository, instance_client, controller_settings):
    rt = ControllerRuntime(
        repository=repository, client=instance_client, settings=controller_settings
    )
    rt.health_pollers = FakePollerRegistry()
    return rt


@pytest.fixture
def api_client(runtime):
    from fastapi.testclient import TestClient

    from app import app
    from service.runtime import get_runtime

    app.dependency_overrides[get_runtime] = lambda: runtime
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_runtime, None)

