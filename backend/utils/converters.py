"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx

IPV4_MAPPED_PREFIX = "::ffff:"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def format_ip_address(ip: Optional[str]) -> str:
    """Strip IPv4-mapped IPv6 notation (``::ffff:1.2.3.4``) down to plain IPv4."""
    if not ip:
        return ""
    if IPV4_MAPPED_PREFIX in ip:
        return ip.split(IPV4_MAPPED_PREFIX, 1)[1]
    return ip


def describe_error(exc: BaseException) -> str:
    """Human readable message for a failed outbound call."""
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} from {exc.request.url}"
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timeout ({type(exc).__name__})"
    message = str(exc).strip()
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


def ensure_url_scheme(target: str, default_scheme: str = "http") -> str:
    """Prefix bare hosts such as ``1.1.1.1`` or ``example.com`` with a scheme."""
    target = target.strip()
    if "://" in target:
        return target
    return f"{default_scheme}://{target}"
