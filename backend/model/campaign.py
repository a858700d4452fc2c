"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator
from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    func,
)

from config.business import (
    MAX_DURATION_SECONDS,
    MIN_DURATION_SECONDS,
    SUPPORTED_LAYERS,
)
from db.mysql import Base
from utils.be_config import MAX_INSTANCE_ID_LENGTH, MAX_TARGET_LENGTH, METHOD_PATTERN


# ---------- Pydantic schemas ----------
class CampaignStartReq(BaseModel):
    """Request payload for starting a campaign across the online fleet."""

    target: str = Field(..., min_length=1, max_length=MAX_TARGET_LENGTH)
    method: str = Field(..., min_length=1, max_length=32)
    layer: int = Field(..., description="Network layer of the workload: 4 or 7")
    duration: int = Field(
        ...,
        description=f"Run time in seconds, clamped to {MIN_DURATION_SECONDS}-{MAX_DURATION_SECONDS}",
    )

    @validator("target")
    def validate_target(cls, v: str) -> str:
        target = v.strip()
        if not target:
            raise ValueError("Target cannot be empty")
        if any(ch.isspace() for ch in target):
            raise ValueError("Target cannot contain whitespace")
        return target

    @validator("method")
    def validate_method(cls, v: str) -> str:
        method = v.strip()
        if not re.match(METHOD_PATTERN, method):
            raise ValueError("Method may only contain letters, digits, '_' and '-'")
        return method

    @validator("layer")
    def validate_layer(cls, v: int) -> int:
        if v not in SUPPORTED_LAYERS:
            raise ValueError(
                f"Layer must be one of {', '.join(str(layer) for layer in SUPPORTED_LAYERS)}"
            )
        return v

    @validator("duration", pre=True)
    def clamp_duration(cls, v: Any) -> int:
        if isinstance(v, bool):
            raise ValueError("Duration must be a number of seconds")
        try:
            seconds = int(float(v))
        except (TypeError, ValueError, OverflowError):
            raise ValueError("Duration must be a finite number of seconds")
        return max(MIN_DURATION_SECONDS, min(seconds, MAX_DURATION_SECONDS))


class CampaignStopReq(BaseModel):
    campaignId: str = Field(..., min_length=1, max_length=40)


class InstanceResult(BaseModel):
    """Outcome of one directive delivery."""

    instanceId: str
    ipAddress: Optional[str] = None
    status: str
    error: Optional[str] = None


class CampaignStartRsp(BaseModel):
    status: str
    message: str
    campaignId: str
    campaignStatus: str
    command: str
    results: List[InstanceResult]
    successful: int
    failed: int
    total: int


class CampaignStopRsp(BaseModel):
    status: str
    message: str
    campaignId: str
    campaignStatus: str
    results: List[InstanceResult]
    successful: int
    failed: int
    skipped: int
    total: int


class CampaignDetailRsp(BaseModel):
    data: Dict[str, Any]
    status: str


class CampaignListRsp(BaseModel):
    data: List[Dict[str, Any]]
    status: str


# ---------- SQLAlchemy models ----------
class Campaign(Base):
    """One directed run against a single target."""

    __tablename__ = "campaigns"

    id = Column(String(40), primary_key=True, index=True)
    target = Column(String(MAX_TARGET_LENGTH), nullable=False)
    method = Column(String(32), nullable=False)
    layer = Column(Integer, nullable=False)
    duration = Column(Integer, nullable=False)
    command = Column(Text, nullable=False)
    status = Column(String(32), nullable=False, index=True)
    error_message = Column(Text, nullable=True)
    start_time = Column(BigInteger, nullable=False)
    end_time = Column(BigInteger, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class CampaignInstance(Base):
    """
    Participation of one instance in one campaign.

    The composite primary key makes each (campaign, instance) pair a single
    row, so concurrent outcome writes upsert instead of appending.
    """

    __tablename__ = "campaign_instances"

    campaign_id = Column(String(40), primary_key=True)
    instance_id = Column(String(MAX_INSTANCE_ID_LENGTH), primary_key=True)
    ip_address = Column(String(64), nullable=True)
    status = Column(String(16), nullable=False)
    error = Column(Text, nullable=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def to_record(self) -> Dict[str, Any]:
        return {
            "instanceId": self.instance_id,
            "ipAddress": self.ip_address,
            "status": self.status,
            "error": self.error,
        }
