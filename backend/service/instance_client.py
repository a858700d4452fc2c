"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import time
from typing import Any, Dict, Optional

import httpx

from utils.controller_settings import ControllerSettings, get_controller_settings
from utils.converters import describe_error, ensure_url_scheme
from utils.logger import logger

HTTP_OK = 200


class InstanceClient:
    """
    Outbound HTTP calls to workers and to campaign targets.

    One shared ``httpx.AsyncClient`` is used for all calls; per-call timeouts
    come from the controller settings.
    """

    def __init__(
        self,
        settings: Optional[ControllerSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_controller_settings()
        self._client = httpx.AsyncClient(
            transport=transport,
            verify=False,
            max_redirects=self.settings.HEALTH_PROBE_MAX_REDIRECTS,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=200),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def instance_url(self, ip_address: str, path: str) -> str:
        host = ip_address
        # Bare IPv6 literals need brackets inside a URL
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        if self.settings.INSTANCE_PORT:
            host = f"{host}:{self.settings.INSTANCE_PORT}"
        return f"{self.settings.INSTANCE_SCHEME}://{host}{path}"

    async def check_health(self, instance_id: str, ip_address: str) -> bool:
        """Liveness probe: True only for an HTTP 200 from the worker's health path."""
        url = self.instance_url(ip_address, self.settings.INSTANCE_HEALTH_PATH)
        try:
            response = await self._client.get(
                url, timeout=self.settings.LIVENESS_TIMEOUT_SECONDS
            )
            return response.status_code == HTTP_OK
        except Exception as e:
            logger.error("Error pinging instance {}: {}", instance_id, describe_error(e))
            return False

    async def send_directive(self, ip_address: str, payload: Dict[str, Any]) -> None:
        """POST a directive to a worker. Raises on transport errors and non-2xx."""
        url = self.instance_url(ip_address, self.settings.INSTANCE_COMMAND_PATH)
        response = await self._client.post(
            url, json=payload, timeout=self.settings.DIRECTIVE_TIMEOUT_SECONDS
        )
        response.raise_for_status()

    async def probe_target(self, target: str) -> Dict[str, Any]:
        """
        Reachability probe of a campaign target.

        Any HTTP response counts as alive, whatever its status code. Transport
        failures (timeout, refused connection, DNS) count as not alive.
        """
        url = ensure_url_scheme(target)
        started = time.perf_counter()
        try:
            response = await self._client.get(
                url,
                timeout=self.settings.HEALTH_PROBE_TIMEOUT_SECONDS,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            return {
                "isAlive": False,
                "responseTime": None,
                "httpStatus": None,
                "error": describe_error(e),
                "timeout": True,
            }
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return {
                "isAlive": False,
                "responseTime": None,
                "httpStatus": None,
                "error": describe_error(e),
                "timeout": False,
            }
        return {
            "isAlive": True,
            "responseTime": round((time.perf_counter() - started) * 1000, 2),
            "httpStatus": response.status_code,
            "error": None,
            "timeout": False,
        }
