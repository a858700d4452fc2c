"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from model.telemetry import HealthCheckListRsp, TrafficSeriesRsp
from service.metrics_service import get_health_checks_svc, get_traffic_series_svc
from service.runtime import ControllerRuntime, get_runtime

router = APIRouter()


@router.get("/traffic", response_model=TrafficSeriesRsp)
async def get_traffic_series(
    campaignId: Optional[str] = None,
    startTime: Optional[int] = Query(None, ge=0, description="Epoch milliseconds"),
    endTime: Optional[int] = Query(None, ge=0, description="Epoch milliseconds"),
    round_buckets: bool = Query(
        False, alias="round", description="Snap buckets to 5 second steps"
    ),
    runtime: ControllerRuntime = Depends(get_runtime),
):
    """Worker throughput merged with target response time, sorted by time of day."""
    return await get_traffic_series_svc(
        runtime, campaignId, startTime, endTime, round_buckets
    )


@router.get("/health", response_model=HealthCheckListRsp)
async def get_health_checks(
    campaignId: Optional[str] = None,
    startTime: Optional[int] = Query(None, ge=0, description="Epoch milliseconds"),
    endTime: Optional[int] = Query(None, ge=0, description="Epoch milliseconds"),
    runtime: ControllerRuntime = Depends(get_runtime),
):
    return await get_health_checks_svc(runtime, campaignId, startTime, endTime)
