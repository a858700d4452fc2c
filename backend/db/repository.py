"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config.business import INSTANCE_STATUS_OFFLINE
from model.campaign import Campaign, CampaignInstance
from model.instance import Instance
from model.telemetry import HealthCheck, InstanceLog
from utils.logger import logger

CAMPAIGN_COLUMNS = {
    "status": "status",
    "error": "error_message",
    "endTime": "end_time",
}


def _campaign_record(
    campaign: Campaign, participants: Iterable[CampaignInstance]
) -> Dict[str, Any]:
    return {
        "id": campaign.id,
        "target": campaign.target,
        "method": campaign.method,
        "layer": campaign.layer,
        "duration": campaign.duration,
        "command": campaign.command,
        "status": campaign.status,
        "error": campaign.error_message,
        "startTime": campaign.start_time,
        "endTime": campaign.end_time,
        "instances": {p.instance_id: p.to_record() for p in participants},
    }


class FleetRepository:
    """
    Record store for instances, campaigns, worker logs and target health checks.

    Every method runs in its own short transaction. Store failures propagate
    to the caller.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except OperationalError as e:
                logger.warning("Database operational error: {}", type(e).__name__)
                await session.rollback()
                raise
            except Exception:
                await session.rollback()
                raise

    # ---------- instances ----------
    async def upsert_instance(self, record: Dict[str, Any]) -> None:
        """Insert an instance or merge the given fields into the existing row."""
        values = {
            "id": record["instanceId"],
            "ip_address": record["ipAddress"],
            "region": record["region"],
            "status": record["status"],
            "last_seen": record["lastSeen"],
            "rps": record.get("rps", 0),
            "gps": record.get("gps", 0),
        }
        stmt = mysql_insert(Instance).values(**values)
        stmt = stmt.on_duplicate_key_update(
            ip_address=stmt.inserted.ip_address,
            region=stmt.inserted.region,
            status=stmt.inserted.status,
            last_seen=func.greatest(Instance.last_seen, stmt.inserted.last_seen),
            rps=stmt.inserted.rps,
            gps=stmt.inserted.gps,
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def get_instance(self, instance_id: str) -> Optional[Dict[str, Any]]:
        async with self._session() as session:
            instance = await session.get(Instance, instance_id)
            return instance.to_record() if instance else None

    async def list_instances(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = select(Instance).order_by(Instance.id.asc())
        if status:
            query = query.where(Instance.status == status)
        async with self._session() as session:
            result = await session.execute(query)
            return [instance.to_record() for instance in result.scalars().all()]

    async def update_instance_metrics(
        self,
        instance_id: str,
        last_seen: int,
        rps: Optional[float] = None,
        gps: Optional[float] = None,
    ) -> bool:
        """Refresh liveness counters. Returns False when the instance is unknown."""
        values: Dict[str, Any] = {
            "last_seen": func.greatest(Instance.last_seen, last_seen)
        }
        if rps is not None:
            values["rps"] = rps
        if gps is not None:
            values["gps"] = gps
        stmt = update(Instance).where(Instance.id == instance_id).values(**values)
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def mark_instance_offline(self, instance_id: str, timestamp: int) -> bool:
        """
        Flip an instance to offline in one conditional write.

        Returns False when the instance was already offline (or is unknown).
        """
        stmt = (
            update(Instance)
            .where(
                Instance.id == instance_id,
                Instance.status != INSTANCE_STATUS_OFFLINE,
            )
            .values(status=INSTANCE_STATUS_OFFLINE, last_updated=timestamp)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount > 0

    # ---------- campaigns ----------
    async def create_campaign(self, record: Dict[str, Any]) -> str:
        campaign_id = str(uuid.uuid4())
        campaign = Campaign(
            id=campaign_id,
            target=record["target"],
            method=record["method"],
            layer=record["layer"],
            duration=record["duration"],
            command=record["command"],
            status=record["status"],
            start_time=record["startTime"],
        )
        async with self._session() as session:
            session.add(campaign)
        return campaign_id

    async def get_campaign(self, campaign_id: str) -> Optional[Dict[str, Any]]:
        async with self._session() as session:
            campaign = await session.get(Campaign, campaign_id)
            if not campaign:
                return None
            result = await session.execute(
                select(CampaignInstance).where(
                    CampaignInstance.campaign_id == campaign_id
                )
            )
            return _campaign_record(campaign, result.scalars().all())

    async def list_campaigns(
        self, status: Optional[str] = None, limit: int = 50
    ) -> List[Dict[str, Any]]:
        query = select(Campaign).order_by(Campaign.start_time.desc()).limit(limit)
        if status:
            query = query.where(Campaign.status == status)
        async with self._session() as session:
            campaigns = (await session.execute(query)).scalars().all()
            if not campaigns:
                return []
            rows = await session.execute(
                select(CampaignInstance).where(
                    CampaignInstance.campaign_id.in_([c.id for c in campaigns])
                )
            )
            by_campaign: Dict[str, List[CampaignInstance]] = {}
            for participant in rows.scalars().all():
                by_campaign.setdefault(participant.campaign_id, []).append(participant)
            return [
                _campaign_record(c, by_campaign.get(c.id, [])) for c in campaigns
            ]

    async def update_campaign(self, campaign_id: str, **fields: Any) -> None:
        """Field-level update; accepts ``status``, ``error`` and ``endTime``."""
        values = {CAMPAIGN_COLUMNS[key]: value for key, value in fields.items()}
        stmt = update(Campaign).where(Campaign.id == campaign_id).values(**values)
        async with self._session() as session:
            await session.execute(stmt)

    async def upsert_participation(
        self,
        campaign_id: str,
        instance_id: str,
        status: str,
        ip_address: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        """Add or replace the single participation row of an instance."""
        stmt = mysql_insert(CampaignInstance).values(
            campaign_id=campaign_id,
            instance_id=instance_id,
            ip_address=ip_address,
            status=status,
            error=error,
        )
        stmt = stmt.on_duplicate_key_update(
            ip_address=func.coalesce(
                stmt.inserted.ip_address, CampaignInstance.ip_address
            ),
            status=stmt.inserted.status,
            error=stmt.inserted.error,
        )
        async with self._session() as session:
            await session.execute(stmt)

    # ---------- telemetry ----------
    async def add_logs(self, records: List[Dict[str, Any]]) -> int:
        if not records:
            return 0
        async with self._session() as session:
            session.add_all([InstanceLog.from_record(record) for record in records])
        return len(records)

    async def query_logs(
        self,
        campaign_id: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = select(InstanceLog)
        if campaign_id:
            query = query.where(InstanceLog.campaign_id == campaign_id)
        if start_time is not None:
            query = query.where(InstanceLog.servertime >= start_time)
        if end_time is not None:
            query = query.where(InstanceLog.servertime <= end_time)
        query = query.order_by(InstanceLog.servertime.asc(), InstanceLog.id.asc())
        async with self._session() as session:
            result = await session.execute(query)
            return [row.to_record() for row in result.scalars().all()]

    async def add_health_check(self, record: Dict[str, Any]) -> None:
        async with self._session() as session:
            session.add(HealthCheck.from_record(record))

    async def query_health_checks(
        self,
        campaign_id: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        query = select(HealthCheck)
        if campaign_id:
            query = query.where(HealthCheck.campaign_id == campaign_id)
        if start_time is not None:
            query = query.where(HealthCheck.timestamp >= start_time)
        if end_time is not None:
            query = query.where(HealthCheck.timestamp <= end_time)
        query = query.order_by(HealthCheck.timestamp.asc(), HealthCheck.id.asc())
        async with self._session() as session:
            result = await session.execute(query)
            return [row.to_record() for row in result.scalars().all()]
