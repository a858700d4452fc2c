"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Any, Dict, List, Optional

from config.business import (
    ACTION_START,
    ACTION_STOP,
    CAMPAIGN_STATUS_ERROR,
    CAMPAIGN_STATUS_FAILED,
    CAMPAIGN_STATUS_PARTIALLY_STOPPED,
    CAMPAIGN_STATUS_RUNNING,
    CAMPAIGN_STATUS_STOPPED,
    COMMAND_TEMPLATES,
    INSTANCE_STATUS_ONLINE,
    PARTICIPANT_STATUS_RUNNING,
    PARTICIPANT_STATUS_SKIPPED,
)
from model.campaign import (
    CampaignDetailRsp,
    CampaignListRsp,
    CampaignStartReq,
    CampaignStartRsp,
    CampaignStopRsp,
    InstanceResult,
)
from service.dispatcher import Directive, DispatchReport
from service.runtime import ControllerRuntime
from utils.converters import now_ms
from utils.error_handler import ErrorMessages, ErrorResponse
from utils.logger import logger

__all__ = [
    "render_command",
    "resolve_stop_status",
    "start_campaign_svc",
    "stop_campaign_svc",
    "get_campaign_svc",
    "list_campaigns_svc",
]


def render_command(body: CampaignStartReq) -> str:
    """Render the start command from the template of the requested layer."""
    return COMMAND_TEMPLATES[body.layer].format(
        method=body.method, target=body.target, duration=body.duration
    )


def resolve_stop_status(report: DispatchReport) -> str:
    """
    Final status after a stop round: every targeted instance stopped,
    some of them did, or none did.
    """
    if report.total > 0 and report.successful == report.total:
        return CAMPAIGN_STATUS_STOPPED
    if report.successful > 0:
        return CAMPAIGN_STATUS_PARTIALLY_STOPPED
    return CAMPAIGN_STATUS_ERROR


def _report_details(
    campaign_id: str, results: List[InstanceResult], report: DispatchReport
) -> Dict[str, Any]:
    return {
        "campaignId": campaign_id,
        "results": [result.model_dump() for result in results],
        "successful": report.successful,
        "failed": report.failed,
        "total": report.total,
    }


async def start_campaign_svc(
    runtime: ControllerRuntime, body: CampaignStartReq
) -> CampaignStartRsp:
    repository = runtime.repository
    command = render_command(body)

    try:
        campaign_id = await repository.create_campaign(
            {
                "target": body.target,
                "method": body.method,
                "layer": body.layer,
                "duration": body.duration,
                "command": command,
                "status": CAMPAIGN_STATUS_RUNNING,
                "startTime": now_ms(),
            }
        )
    except Exception as e:
        logger.exception("Failed to create campaign: {}", e)
        raise ErrorResponse.internal_server_error(
            ErrorMessages.CAMPAIGN_CREATION_FAILED
        )

    campaign_logger = logger.bind(campaign_id=campaign_id)
    campaign_logger.info(
        "Campaign created: layer {} {} against {} for {}s",
        body.layer,
        body.method,
        body.target,
        body.duration,
    )
    runtime.health_pollers.launch(body.target, campaign_id, body.duration)

    try:
        online_instances = await repository.list_instances(
            status=INSTANCE_STATUS_ONLINE
        )
        if not online_instances:
            await repository.update_campaign(
                campaign_id,
                status=CAMPAIGN_STATUS_FAILED,
                error=ErrorMessages.NO_ONLINE_INSTANCES,
            )
            campaign_logger.warning("No online instances, campaign failed.")
            raise ErrorResponse.service_unavailable(
                ErrorMessages.NO_ONLINE_INSTANCES,
                details={"campaignId": campaign_id},
                code="no_online_instances",
            )

        directive = Directive(
            action=ACTION_START,
            processId=runtime.settings.WORKER_PROCESS_ID,
            command=command,
            duration=body.duration,
            campaign=campaign_id,
        )
        report = await runtime.dispatcher.dispatch(
            campaign_id, directive, online_instances
        )

        if report.successful == 0:
            await repository.update_campaign(
                campaign_id,
                status=CAMPAIGN_STATUS_FAILED,
                error=ErrorMessages.CAMPAIGN_START_FAILED,
            )
            campaign_logger.error(
                "Campaign failed to start on all {} instances.", report.total
            )
            raise ErrorResponse.bad_gateway(
                ErrorMessages.CAMPAIGN_START_FAILED,
                details=_report_details(campaign_id, report.results, report),
            )
    except ErrorResponse:
        raise
    except Exception as e:
        campaign_logger.exception("Failed to start campaign: {}", e)
        raise ErrorResponse.internal_server_error(ErrorMessages.DATABASE_ERROR)

    campaign_logger.info(
        "Campaign started on {}/{} instances.", report.successful, report.total
    )
    return CampaignStartRsp(
        status="success",
        message=f"Campaign started on {report.successful} of {report.total} instances",
        campaignId=campaign_id,
        campaignStatus=CAMPAIGN_STATUS_RUNNING,
        command=command,
        results=report.results,
        successful=report.successful,
        failed=report.failed,
        total=report.total,
    )


async def stop_campaign_svc(
    runtime: ControllerRuntime, campaign_id: str
) -> CampaignStopRsp:
    if not campaign_id:
        raise ErrorResponse.bad_request(ErrorMessages.CAMPAIGN_ID_REQUIRED)

    repository = runtime.repository
    campaign_logger = logger.bind(campaign_id=campaign_id)
    try:
        campaign = await repository.get_campaign(campaign_id)
        if not campaign:
            raise ErrorResponse.not_found(ErrorMessages.CAMPAIGN_NOT_FOUND)
        if campaign["status"] != CAMPAIGN_STATUS_RUNNING:
            raise ErrorResponse.conflict(
                ErrorMessages.CAMPAIGN_NOT_RUNNING,
                details={"campaignStatus": campaign["status"]},
            )

        participants = list((campaign.get("instances") or {}).values())
        if not participants:
            raise ErrorResponse.bad_request(ErrorMessages.CAMPAIGN_NO_PARTICIPANTS)

        targets = [p for p in participants if p["status"] == PARTICIPANT_STATUS_RUNNING]
        skipped = [
            InstanceResult(
                instanceId=p["instanceId"],
                ipAddress=p.get("ipAddress"),
                status=PARTICIPANT_STATUS_SKIPPED,
                error=p.get("error"),
            )
            for p in participants
            if p["status"] != PARTICIPANT_STATUS_RUNNING
        ]

        directive = Directive(
            action=ACTION_STOP,
            processId=runtime.settings.WORKER_PROCESS_ID,
            campaign=campaign_id,
        )
        report = await runtime.dispatcher.dispatch(campaign_id, directive, targets)
        final_status = resolve_stop_status(report)

        # The all-failed outcome is left without an end time
        fields: Dict[str, Any] = {"status": final_status}
        if final_status in (CAMPAIGN_STATUS_STOPPED, CAMPAIGN_STATUS_PARTIALLY_STOPPED):
            fields["endTime"] = now_ms()
        else:
            fields["error"] = ErrorMessages.CAMPAIGN_STOP_FAILED
        await repository.update_campaign(campaign_id, **fields)
    except ErrorResponse:
        raise
    except Exception as e:
        campaign_logger.exception("Failed to stop campaign: {}", e)
        raise ErrorResponse.internal_server_error(ErrorMessages.DATABASE_ERROR)

    results = report.results + skipped
    campaign_logger.info(
        "Campaign stop finished as {}: {}/{} stopped, {} skipped.",
        final_status,
        report.successful,
        report.total,
        len(skipped),
    )
    if final_status == CAMPAIGN_STATUS_ERROR:
        details = _report_details(campaign_id, results, report)
        details["campaignStatus"] = final_status
        raise ErrorResponse.bad_gateway(
            ErrorMessages.CAMPAIGN_STOP_FAILED, details=details
        )

    return CampaignStopRsp(
        status="success",
        message=f"Campaign {final_status}",
        campaignId=campaign_id,
        campaignStatus=final_status,
        results=results,
        successful=report.successful,
        failed=report.failed,
        skipped=len(skipped),
        total=report.total,
    )


async def get_campaign_svc(
    runtime: ControllerRuntime, campaign_id: str
) -> CampaignDetailRsp:
    try:
        campaign = await runtime.repository.get_campaign(campaign_id)
    except Exception as e:
        logger.exception("Failed to retrieve campaign {}: {}", campaign_id, e)
        raise ErrorResponse.internal_server_error(ErrorMessages.CAMPAIGN_FETCH_FAILED)
    if not campaign:
        raise ErrorResponse.not_found(ErrorMessages.CAMPAIGN_NOT_FOUND)
    return CampaignDetailRsp(data=campaign, status="success")


async def list_campaigns_svc(
    runtime: ControllerRuntime, status: Optional[str] = None, limit: int = 50
) -> CampaignListRsp:
    try:
        campaigns = await runtime.repository.list_campaigns(status=status, limit=limit)
    except Exception as e:
        logger.exception("Failed to list campaigns: {}", e)
        raise ErrorResponse.internal_server_error(ErrorMessages.CAMPAIGN_FETCH_FAILED)
    return CampaignListRsp(data=campaigns, status="success")
