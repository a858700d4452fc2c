"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Any, Dict, List, Optional

from config.business import DEFAULT_REGION, INSTANCE_STATUS_ONLINE
from model.instance import (
    InstanceConnectReq,
    InstanceConnectRsp,
    InstanceListRsp,
    InstanceUpdateReq,
    InstanceUpdateRsp,
)
from service.runtime import ControllerRuntime
from utils.converters import format_ip_address, now_ms
from utils.error_handler import ErrorMessages, ErrorResponse
from utils.logger import logger
from utils.telemetry_parser import parse_output


def build_log_records(
    body: InstanceUpdateReq, process_id: str, servertime: int
) -> List[Dict[str, Any]]:
    """Parse the captured output of the worker process into LogRecords."""
    process = (body.processes or {}).get(process_id)
    if process is None or not isinstance(process.output, list):
        return []
    return [
        {
            **record,
            "instanceId": body.instanceId,
            "campaignId": body.campaign,
            "servertime": servertime,
        }
        for record in parse_output(process.output)
    ]


async def connect_instance_svc(
    runtime: ControllerRuntime, body: InstanceConnectReq, client_ip: Optional[str]
) -> InstanceConnectRsp:
    instance_id = body.instanceId or str(now_ms())
    record = {
        "instanceId": instance_id,
        "region": body.region or DEFAULT_REGION,
        "status": INSTANCE_STATUS_ONLINE,
        "ipAddress": format_ip_address(client_ip),
        "lastSeen": now_ms(),
        "rps": 0,
        "gps": 0,
    }
    try:
        await runtime.repository.upsert_instance(record)
    except Exception as e:
        logger.exception("Error connecting instance {}: {}", instance_id, e)
        raise ErrorResponse.internal_server_error(ErrorMessages.INSTANCE_CONNECT_FAILED)

    logger.info(
        "Instance {} connected from {} ({})",
        instance_id,
        record["ipAddress"],
        record["region"],
    )
    return InstanceConnectRsp(
        status="success",
        message="Instance connected successfully",
        instanceId=instance_id,
    )


async def update_instance_svc(
    runtime: ControllerRuntime, body: InstanceUpdateReq
) -> InstanceUpdateRsp:
    if not body.instanceId:
        raise ErrorResponse.bad_request(ErrorMessages.INSTANCE_ID_REQUIRED)

    servertime = now_ms()
    records = build_log_records(body, runtime.settings.WORKER_PROCESS_ID, servertime)
    try:
        found = await runtime.repository.update_instance_metrics(
            body.instanceId, servertime, rps=body.rps, gps=body.gps
        )
        if not found:
            raise ErrorResponse.not_found(ErrorMessages.INSTANCE_NOT_FOUND)
        stored = await runtime.repository.add_logs(records)
    except ErrorResponse:
        raise
    except Exception as e:
        logger.exception("Error updating instance metrics {}: {}", body.instanceId, e)
        raise ErrorResponse.internal_server_error(ErrorMessages.INSTANCE_UPDATE_FAILED)

    return InstanceUpdateRsp(
        status="success",
        message="Instance metrics updated successfully",
        logsStored=stored,
    )


async def list_instances_svc(
    runtime: ControllerRuntime, status: Optional[str] = None
) -> InstanceListRsp:
    try:
        instances = await runtime.repository.list_instances(status=status)
    except Exception as e:
        logger.exception("Error listing instances: {}", e)
        raise ErrorResponse.internal_server_error(ErrorMessages.INSTANCE_LIST_FAILED)
    return InstanceListRsp(data=instances, status="success")
