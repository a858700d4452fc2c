"""
Record store statement tests, compiled against the MySQL dialect without a server.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy import Text
from sqlalchemy.dialects import mysql

from db.db_config import MySqlSettings
from db.mysql import build_database_url, get_safe_database_url
from db.repository import FleetRepository
from model.telemetry import HealthCheck, InstanceLog


class RecordingSession:
    def __init__(self, rowcount=1, fail=False):
        self.statements = []
        self.added = []
        self.rowcount = rowcount
        self.fail = fail
        self.committed = False
        self.rolled_back = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, stmt):
        if self.fail:
            raise RuntimeError("database gone")
        self.statements.append(stmt)
        return SimpleNamespace(rowcount=self.rowcount)

    def add_all(self, rows):
        self.added.extend(rows)

    async def commit(self):
        self.committed = True

    async def rollback(self):
        self.rolled_back = True


def make_repository(**kwargs):
    session = RecordingSession(**kwargs)
    return FleetRepository(lambda: session), session


def compiled(stmt):
    return str(stmt.compile(dialect=mysql.dialect()))


class TestFleetRepository:
    @pytest.mark.asyncio
    async def test_upsert_instance_keeps_last_seen_monotonic(self):
        repository, session = make_repository()

        await repository.upsert_instance(
            {
                "instanceId": "w-1",
                "ipAddress": "10.0.0.1",
                "region": "eu",
                "status": "online",
                "lastSeen": 10,
            }
        )

        sql = compiled(session.statements[0])
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert "greatest(" in sql.lower()
        assert session.committed

    @pytest.mark.asyncio
    async def test_participation_is_a_keyed_upsert(self):
        repository, session = make_repository()

        await repository.upsert_participation("c-1", "w-1", "running", "10.0.0.1")

        sql = compiled(session.statements[0])
        assert sql.startswith("INSERT INTO campaign_instances")
        assert "ON DUPLICATE KEY UPDATE" in sql

    @pytest.mark.asyncio
    async def test_mark_offline_is_conditional(self):
        repository, session = make_repository(rowcount=0)

        changed = await repository.mark_instance_offline("w-1", 5000)

        assert changed is False
        sql = compiled(session.statements[0])
        assert "instances.status != " in sql

    @pytest.mark.asyncio
    async def test_update_metrics_reports_unknown_instance(self):
        repository, _ = make_repository(rowcount=0)
        assert await repository.update_instance_metrics("ghost", 1, rps=2) is False

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back_and_propagates(self):
        repository, session = make_repository(fail=True)

        with pytest.raises(RuntimeError):
            await repository.update_campaign("c-1", status="stopped")

        assert session.rolled_back
        assert not session.committed

    @pytest.mark.asyncio
    async def test_update_campaign_maps_fields_to_columns(self):
        repository, session = make_repository()

        await repository.update_campaign("c-1", status="error", error="boom")

        sql = compiled(session.statements[0])
        assert "error_message" in sql
        assert "end_time" not in sql

    @pytest.mark.asyncio
    async def test_add_logs(self):
        repository, session = make_repository()

        assert await repository.add_logs([]) == 0
        stored = await repository.add_logs(
            [{"instanceId": "w-1", "time": "10:00:00", "Port": 53, "servertime": 7}]
        )

        assert stored == 1
        assert isinstance(session.added[0], InstanceLog)
        assert session.added[0].port == 53


def test_row_mappings_round_trip_record_keys():
    check = HealthCheck.from_record(
        {
            "target": "1.1.1.1",
            "campaignId": "c-1",
            "timestamp": 5,
            "isAlive": False,
            "responseTime": None,
            "timeout": True,
        }
    )
    record = check.to_record()
    assert record["campaignId"] == "c-1"
    assert record["isAlive"] is False
    assert record["timeout"] is True

    log = InstanceLog.from_record(
        {"instanceId": "w-1", "PPS": "1k", "BPS": "2 MB", "servertime": 9}
    )
    assert log.to_record()["PPS"] == "1k"
    assert log.to_record()["createdAt"] is None


def test_log_row_fits_long_targets_and_oversized_fields():
    long_url = "https://example.com/" + "a" * 300
    log = InstanceLog.from_record(
        {
            "instanceId": "w-1",
            "Target": long_url,
            "Port": 99999999,
            "Method": "M" * 50,
            "PPS": "9" * 40 + "k",
            "BPS": "1" * 40 + " MB",
            "percentage": "123456789%",
            "servertime": 9,
        }
    )

    assert log.target == long_url
    assert log.port is None
    assert len(log.method) == 32
    assert len(log.pps) == 32
    assert len(log.bps) == 32
    assert len(log.percentage) == 8
    assert isinstance(InstanceLog.__table__.c.target.type, Text)


def test_database_url_masks_password():
    settings = MySqlSettings(DB_USER="svc", DB_PASSWORD="s3cret", DB_HOST="db")

    assert "s3cret" not in get_safe_database_url(settings)
    assert build_database_url(settings).password == "s3cret"
    assert build_database_url(settings).drivername == "mysql+aiomysql"
