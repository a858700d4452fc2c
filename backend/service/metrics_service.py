"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from typing import Optional

from model.telemetry import HealthCheckListRsp, TrafficSeriesRsp
from service.runtime import ControllerRuntime
from utils.error_handler import ErrorMessages, ErrorResponse
from utils.logger import logger
from utils.timeseries import aggregate_series


def _validate_range(start_time: Optional[int], end_time: Optional[int]) -> None:
    if start_time is not None and end_time is not None and start_time > end_time:
        raise ErrorResponse.bad_request(ErrorMessages.INVALID_TIME_RANGE)


async def get_traffic_series_svc(
    runtime: ControllerRuntime,
    campaign_id: Optional[str] = None,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
    round_to_five: bool = False,
) -> TrafficSeriesRsp:
    """Merged worker throughput and target latency, one slot per time of day."""
    _validate_range(start_time, end_time)
    try:
        logs = await runtime.repository.query_logs(campaign_id, start_time, end_time)
        health_checks = await runtime.repository.query_health_checks(
            campaign_id, start_time, end_time
        )
    except Exception as e:
        logger.exception("Failed to fetch traffic data: {}", e)
        raise ErrorResponse.internal_server_error(ErrorMessages.METRICS_FETCH_FAILED)

    series = aggregate_series(logs, health_checks, round_to_five=round_to_five)
    return TrafficSeriesRsp(data=series, status="success")


async def get_health_checks_svc(
    runtime: ControllerRuntime,
    campaign_id: Optional[str] = None,
    start_time: Optional[int] = None,
    end_time: Optional[int] = None,
) -> HealthCheckListRsp:
    _validate_range(start_time, end_time)
    try:
        checks = await runtime.repository.query_health_checks(
            campaign_id, start_time, end_time
        )
    except Exception as e:
        logger.exception("Failed to fetch health checks: {}", e)
        raise ErrorResponse.internal_server_error(ErrorMessages.HEALTH_FETCH_FAILED)
    return HealthCheckListRsp(data=checks, status="success")
