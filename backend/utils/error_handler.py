"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Optional, Union

from fastapi import HTTPException
from starlette.responses import JSONResponse

Details = Optional[Union[str, Dict[str, Any]]]


class ErrorMessages:
    """Common error messages"""

    # General errors
    INTERNAL_SERVER_ERROR = "Internal server error"
    DATABASE_ERROR = "Database operation failed"
    VALIDATION_ERROR = "Validation failed"
    RUNTIME_NOT_READY = "Controller is not initialized"

    # Instance related errors
    INSTANCE_ID_REQUIRED = "Instance ID is required"
    INSTANCE_NOT_FOUND = "Instance not found"
    INSTANCE_CONNECT_FAILED = "Failed to connect instance"
    INSTANCE_UPDATE_FAILED = "Failed to update instance metrics"
    INSTANCE_LIST_FAILED = "Failed to retrieve instances"

    # Campaign related errors
    CAMPAIGN_ID_REQUIRED = "Campaign ID is required"
    CAMPAIGN_NOT_FOUND = "Campaign not found"
    CAMPAIGN_NOT_RUNNING = "Campaign is not running"
    CAMPAIGN_NO_PARTICIPANTS = "Campaign has no participating instances"
    CAMPAIGN_START_FAILED = "Failed to start campaign on any instance"
    CAMPAIGN_STOP_FAILED = "Failed to stop campaign on any instance"
    CAMPAIGN_CREATION_FAILED = "Failed to create campaign"
    CAMPAIGN_FETCH_FAILED = "Failed to retrieve campaign"
    NO_ONLINE_INSTANCES = "No online instances available"

    # Metrics related errors
    METRICS_FETCH_FAILED = "Failed to retrieve metrics"
    HEALTH_FETCH_FAILED = "Failed to retrieve health checks"
    INVALID_TIME_RANGE = "startTime must not be greater than endTime"


class ErrorResponse(HTTPException):
    """Single source of truth for standardized error payloads."""

    def __init__(
        self,
        status_code: int,
        error: str,
        details: Details = None,
        code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.error = error
        self.details = details
        self.code = self._resolve_code(status_code, code)
        self.extra = extra
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.payload: Dict[str, Any] = {
            "success": False,
            "status": "error",
            "message": error,
            "code": self.code,
            "status_code": status_code,
            "timestamp": self.timestamp,
        }

        if details is not None:
            self.payload["details"] = details
        if extra:
            self.payload["meta"] = extra

        super().__init__(status_code=status_code, detail=self.payload)

    @staticmethod
    def _resolve_code(status_code: int, explicit_code: Optional[str]) -> str:
        """Infer a normalized code from HTTP status when not explicitly provided."""
        if explicit_code:
            return explicit_code

        try:
            phrase = HTTPStatus(status_code).phrase
            return phrase.lower().replace(" ", "_")
        except ValueError:
            return str(status_code)

    def to_response(self) -> JSONResponse:
        """Serialize the service error into a standardized JSON response."""
        return JSONResponse(status_code=self.status_code, content=self.payload)

    @classmethod
    def bad_request(
        cls, error: str, details: Details = None, code: Optional[str] = None
    ) -> "ErrorResponse":
        return cls(400, error, details, code)

    @classmethod
    def not_found(
        cls, error: str, details: Details = None, code: Optional[str] = None
    ) -> "ErrorResponse":
        return cls(404, error, details, code)

    @classmethod
    def conflict(
        cls, error: str, details: Details = None, code: Optional[str] = None
    ) -> "ErrorResponse":
        return cls(409, error, details, code)

    @classmethod
    def unprocessable_entity(
        cls, error: str, details: Details = None, code: Optional[str] = None
    ) -> "ErrorResponse":
        return cls(422, error, details, code)

    @classmethod
    def internal_server_error(
        cls,
        error: str = ErrorMessages.INTERNAL_SERVER_ERROR,
        details: Details = None,
        code: Optional[str] = None,
    ) -> "ErrorResponse":
        return cls(500, error, details, code)

    @classmethod
    def bad_gateway(
        cls, error: str, details: Details = None, code: Optional[str] = None
    ) -> "ErrorResponse":
        """Every upstream worker call behind the request failed."""
        return cls(502, error, details, code)

    @classmethod
    def service_unavailable(
        cls, error: str, details: Details = None, code: Optional[str] = None
    ) -> "ErrorResponse":
        """No capacity to serve the request, e.g. no online instances."""
        return cls(503, error, details, code)
