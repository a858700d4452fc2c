"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from model.campaign import (
    CampaignDetailRsp,
    CampaignListRsp,
    CampaignStartReq,
    CampaignStartRsp,
    CampaignStopReq,
    CampaignStopRsp,
)
from service.campaign_service import (
    get_campaign_svc,
    list_campaigns_svc,
    start_campaign_svc,
    stop_campaign_svc,
)
from service.runtime import ControllerRuntime, get_runtime

router = APIRouter()


@router.get("", response_model=CampaignListRsp)
async def list_campaigns(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    runtime: ControllerRuntime = Depends(get_runtime),
):
    return await list_campaigns_svc(runtime, status, limit)


@router.post("", response_model=CampaignStartRsp)
async def start_campaign(
    body: CampaignStartReq, runtime: ControllerRuntime = Depends(get_runtime)
):
    return await start_campaign_svc(runtime, body)


@router.post("/stop", response_model=CampaignStopRsp)
async def stop_campaign(
    body: CampaignStopReq, runtime: ControllerRuntime = Depends(get_runtime)
):
    return await stop_campaign_svc(runtime, body.campaignId)


@router.get("/{campaign_id}", response_model=CampaignDetailRsp)
async def get_campaign(
    campaign_id: str, runtime: ControllerRuntime = Depends(get_runtime)
):
    return await get_campaign_svc(runtime, campaign_id)
