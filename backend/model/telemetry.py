"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    func,
)

from db.mysql import Base
from utils.be_config import MAX_INSTANCE_ID_LENGTH, MAX_TARGET_LENGTH

MAX_PORT = 65535


# ---------- Pydantic schemas ----------
class AggregatedSlot(BaseModel):
    """One bucket of the merged traffic + health series."""

    time: str
    servertime: Optional[float] = None
    bps: float
    pps: float
    responseTime: Optional[float] = None
    recordCount: int
    targets: List[str]
    methods: List[str]
    ports: List[int]


class TrafficSeriesRsp(BaseModel):
    data: List[AggregatedSlot]
    status: str


class HealthCheckItem(BaseModel):
    target: str
    campaignId: str
    timestamp: int
    isAlive: bool
    responseTime: Optional[float] = None
    httpStatus: Optional[int] = None
    error: Optional[str] = None
    timeout: bool = False


class HealthCheckListRsp(BaseModel):
    data: List[HealthCheckItem]
    status: str


def _clip(value: Optional[str], column: Any) -> Optional[str]:
    """Truncate a parsed field to its column width so one line never fails a batch."""
    if value is None:
        return None
    return str(value)[: column.type.length]


def _valid_port(value: Any) -> Optional[int]:
    if isinstance(value, int) and 0 <= value <= MAX_PORT:
        return value
    return None


# ---------- SQLAlchemy models ----------
class InstanceLog(Base):
    """One parsed line of worker output. Rows are never updated."""

    __tablename__ = "instance_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    instance_id = Column(String(MAX_INSTANCE_ID_LENGTH), nullable=False, index=True)
    campaign_id = Column(String(40), nullable=True, index=True)
    time = Column(String(8), nullable=True)
    # Worker output echoes the campaign target, which may be a long URL
    target = Column(Text, nullable=True)
    port = Column(Integer, nullable=True)
    method = Column(String(32), nullable=True)
    pps = Column(String(32), nullable=True)
    bps = Column(String(32), nullable=True)
    percentage = Column(String(8), nullable=True)
    servertime = Column(BigInteger, nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "InstanceLog":
        return cls(
            instance_id=record["instanceId"],
            campaign_id=record.get("campaignId"),
            time=record.get("time"),
            target=record.get("Target"),
            port=_valid_port(record.get("Port")),
            method=_clip(record.get("Method"), cls.__table__.c.method),
            pps=_clip(record.get("PPS"), cls.__table__.c.pps),
            bps=_clip(record.get("BPS"), cls.__table__.c.bps),
            percentage=_clip(record.get("percentage"), cls.__table__.c.percentage),
            servertime=record["servertime"],
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "time": self.time,
            "Target": self.target,
            "Port": self.port,
            "Method": self.method,
            "PPS": self.pps,
            "BPS": self.bps,
            "percentage": self.percentage,
            "instanceId": self.instance_id,
            "campaignId": self.campaign_id,
            "servertime": self.servertime,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class HealthCheck(Base):
    """One reachability probe of a campaign target. Rows are never updated."""

    __tablename__ = "health_checks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    target = Column(String(MAX_TARGET_LENGTH), nullable=False)
    campaign_id = Column(String(40), nullable=False, index=True)
    timestamp = Column(BigInteger, nullable=False, index=True)
    is_alive = Column(Boolean, nullable=False)
    response_time = Column(Float, nullable=True)
    http_status = Column(Integer, nullable=True)
    error = Column(Text, nullable=True)
    timeout = Column(Boolean, nullable=False, default=False)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "HealthCheck":
        return cls(
            target=record["target"],
            campaign_id=record["campaignId"],
            timestamp=record["timestamp"],
            is_alive=bool(record.get("isAlive")),
            response_time=record.get("responseTime"),
            http_status=record.get("httpStatus"),
            error=record.get("error"),
            timeout=bool(record.get("timeout")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "campaignId": self.campaign_id,
            "timestamp": self.timestamp,
            "isAlive": bool(self.is_alive),
            "responseTime": self.response_time,
            "httpStatus": self.http_status,
            "error": self.error,
            "timeout": bool(self.timeout),
        }
