"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from model.instance import (
    InstanceConnectReq,
    InstanceConnectRsp,
    InstanceListRsp,
    InstanceUpdateReq,
    InstanceUpdateRsp,
)
from service.instance_service import (
    connect_instance_svc,
    list_instances_svc,
    update_instance_svc,
)
from service.runtime import ControllerRuntime, get_runtime

router = APIRouter()


@router.post("/connect", response_model=InstanceConnectRsp)
async def connect_instance(
    request: Request,
    body: Optional[InstanceConnectReq] = None,
    runtime: ControllerRuntime = Depends(get_runtime),
):
    """Register a worker, or refresh it when it reconnects."""
    client_ip = request.client.host if request.client else None
    return await connect_instance_svc(runtime, body or InstanceConnectReq(), client_ip)


@router.post("/update", response_model=InstanceUpdateRsp)
async def update_instance(
    body: InstanceUpdateReq, runtime: ControllerRuntime = Depends(get_runtime)
):
    return await update_instance_svc(runtime, body)


@router.get("/api/instances", response_model=InstanceListRsp)
async def list_instances(
    status: Optional[str] = Query(None, pattern="^(online|offline)$"),
    runtime: ControllerRuntime = Depends(get_runtime),
):
    return await list_instances_svc(runtime, status)
