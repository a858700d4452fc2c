"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from config.business import (
    ACTION_START,
    PARTICIPANT_STATUS_FAILED,
    PARTICIPANT_STATUS_RUNNING,
    PARTICIPANT_STATUS_STOPPED,
)
from model.campaign import InstanceResult
from utils.converters import describe_error
from utils.logger import logger


class Directive(BaseModel):
    """A start or stop instruction for the worker process on an instance."""

    action: str
    processId: str
    command: Optional[str] = None
    duration: Optional[int] = None
    campaign: Optional[str] = None

    @property
    def success_status(self) -> str:
        if self.action == ACTION_START:
            return PARTICIPANT_STATUS_RUNNING
        return PARTICIPANT_STATUS_STOPPED

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class DispatchReport(BaseModel):
    results: List[InstanceResult]
    successful: int
    failed: int
    total: int


class CommandDispatcher:
    """
    Fans one directive out to many instances and records each outcome.

    Calls run concurrently and fail independently. The campaign's status is
    left to the caller; only the per-instance participation rows are written.
    """

    def __init__(self, repository, client):
        self.repository = repository
        self.client = client

    async def _deliver(
        self, directive: Directive, instance: Dict[str, Any]
    ) -> InstanceResult:
        instance_id = instance["instanceId"]
        ip_address = instance.get("ipAddress")
        try:
            await self.client.send_directive(ip_address or "", directive.to_payload())
        except Exception as e:
            error = describe_error(e)
            logger.error(
                "Failed to {} instance {}: {}", directive.action, instance_id, error
            )
            return InstanceResult(
                instanceId=instance_id,
                ipAddress=ip_address,
                status=PARTICIPANT_STATUS_FAILED,
                error=error,
            )
        return InstanceResult(
            instanceId=instance_id,
            ipAddress=ip_address,
            status=directive.success_status,
        )

    async def dispatch(
        self,
        campaign_id: str,
        directive: Directive,
        instances: List[Dict[str, Any]],
    ) -> DispatchReport:
        results = list(
            await asyncio.gather(
                *(self._deliver(directive, instance) for instance in instances)
            )
        )

        # One keyed upsert per instance; never append
        for result in results:
            await self.repository.upsert_participation(
                campaign_id,
                result.instanceId,
                result.status,
                ip_address=result.ipAddress,
                error=result.error,
            )

        failed = sum(1 for r in results if r.status == PARTICIPANT_STATUS_FAILED)
        return DispatchReport(
            results=results,
            successful=len(results) - failed,
            failed=failed,
            total=len(results),
        )
