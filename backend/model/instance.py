"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator
from sqlalchemy import BigInteger, Column, DateTime, Float, String, func

from db.mysql import Base
from utils.be_config import MAX_INSTANCE_ID_LENGTH


# ---------- Pydantic schemas ----------
class InstanceConnectReq(BaseModel):
    """Registration payload sent by a worker when it comes up."""

    instanceId: Optional[str] = Field(default=None, max_length=MAX_INSTANCE_ID_LENGTH)
    region: Optional[str] = Field(default=None, max_length=100)

    @validator("instanceId", "region")
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class InstanceConnectRsp(BaseModel):
    status: str
    message: str
    instanceId: str


class ProcessReport(BaseModel):
    """Captured state of one worker process."""

    output: Optional[List[Any]] = None

    class Config:
        extra = "allow"


class InstanceUpdateReq(BaseModel):
    """Periodic counters and captured output pushed by a worker."""

    instanceId: Optional[str] = Field(default=None, max_length=MAX_INSTANCE_ID_LENGTH)
    rps: Optional[float] = Field(default=None, ge=0)
    gps: Optional[float] = Field(default=None, ge=0)
    processes: Optional[Dict[str, ProcessReport]] = None
    campaign: Optional[str] = Field(default=None, max_length=40)


class InstanceUpdateRsp(BaseModel):
    status: str
    message: str
    logsStored: int = 0


class InstanceListRsp(BaseModel):
    data: List[Dict[str, Any]]
    status: str


# ---------- SQLAlchemy models ----------
class Instance(Base):
    """A registered worker."""

    __tablename__ = "instances"

    id = Column(String(MAX_INSTANCE_ID_LENGTH), primary_key=True, index=True)
    ip_address = Column(String(64), nullable=False)
    region = Column(String(100), nullable=False)
    status = Column(String(16), nullable=False, index=True)
    last_seen = Column(BigInteger, nullable=False)
    last_updated = Column(BigInteger, nullable=True)
    rps = Column(Float, nullable=False, default=0)
    gps = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def to_record(self) -> Dict[str, Any]:
        return {
            "instanceId": self.id,
            "ipAddress": self.ip_address,
            "region": self.region,
            "status": self.status,
            "lastSeen": self.last_seen,
            "lastUpdated": self.last_updated,
            "rps": self.rps or 0,
            "gps": self.gps or 0,
        }
