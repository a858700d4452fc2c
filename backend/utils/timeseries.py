"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from config.business import UNKNOWN_METHOD, UNKNOWN_PORT, UNKNOWN_TARGET
from utils.logger import logger
from utils.telemetry_parser import parse_bps, parse_pps


def time_to_seconds(time_str: Optional[str]) -> int:
    """
    Convert an ``HH:MM:SS`` bucket key into seconds of the day.

    Missing seconds count as zero. Malformed keys are logged and sort as 0.
    """
    try:
        parts = str(time_str).split(":")
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) > 2 and parts[2] else 0
        return hours * 3600 + minutes * 60 + seconds
    except (ValueError, IndexError):
        logger.warning("Invalid time format: {}", time_str)
        return 0


def timestamp_to_time_string(timestamp_ms: float) -> str:
    """Render an epoch-millisecond timestamp as the local ``HH:MM:SS`` time of day."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def round_time_to_nearest_five_seconds(time_str: str) -> str:
    """Snap an ``HH:MM:SS`` key to the nearest multiple of five seconds."""
    hours, minutes, seconds = (int(part) for part in time_str.split(":"))
    rounded_seconds = int(seconds / 5 + 0.5) * 5
    adjusted_minutes = minutes + rounded_seconds // 60
    final_seconds = rounded_seconds % 60
    adjusted_hours = hours + adjusted_minutes // 60
    final_minutes = adjusted_minutes % 60
    return f"{adjusted_hours:02d}:{final_minutes:02d}:{final_seconds:02d}"


def _bucket_key(time_str: Optional[str], round_to_five: bool) -> Optional[str]:
    if not time_str:
        return None
    if not round_to_five:
        return time_str
    try:
        return round_time_to_nearest_five_seconds(time_str)
    except ValueError:
        logger.warning("Cannot round malformed time key: {}", time_str)
        return time_str


def _new_bucket(key: str, servertime: Optional[float]) -> Dict[str, Any]:
    return {
        "time": key,
        "servertime": servertime,
        "bps": 0.0,
        "pps": 0.0,
        "responseTime": None,
        "recordCount": 0,
        "targets": set(),
        "methods": set(),
        "ports": set(),
    }


def _earliest(current: Optional[float], candidate: Optional[float]) -> Optional[float]:
    if current is None:
        return candidate
    if candidate is None:
        return current
    return min(current, candidate)


def aggregate_series(
    logs: Iterable[Dict[str, Any]],
    health_checks: Iterable[Dict[str, Any]],
    round_to_five: bool = False,
) -> List[Dict[str, Any]]:
    """
    Merge telemetry records and health probes into one series keyed by time of day.

    Telemetry is bucketed on the worker's own ``time`` field; health probes on
    their probe timestamp rendered through the local clock. Buckets are sorted
    by seconds of day, so the result does not depend on input order.
    """
    buckets: Dict[str, Dict[str, Any]] = {}

    for record in logs:
        key = _bucket_key(record.get("time"), round_to_five)
        if key is None:
            continue
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _new_bucket(key, record.get("servertime"))
        else:
            bucket["servertime"] = _earliest(
                bucket["servertime"], record.get("servertime")
            )
        bucket["bps"] += parse_bps(record.get("BPS"))
        bucket["pps"] += parse_pps(record.get("PPS"))
        bucket["recordCount"] += 1
        bucket["targets"].add(record.get("Target") or UNKNOWN_TARGET)
        bucket["methods"].add(record.get("Method") or UNKNOWN_METHOD)
        port = record.get("Port")
        bucket["ports"].add(port if port is not None else UNKNOWN_PORT)

    # Latest probe wins for a bucket regardless of the order probes arrive in
    ordered_checks = sorted(health_checks, key=lambda check: check.get("timestamp") or 0)
    for check in ordered_checks:
        response_time = check.get("responseTime")
        timestamp = check.get("timestamp")
        if response_time is None or timestamp is None:
            continue
        key = _bucket_key(timestamp_to_time_string(timestamp), round_to_five)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _new_bucket(key, timestamp)
        bucket["responseTime"] = response_time

    series = sorted(
        buckets.values(), key=lambda item: (time_to_seconds(item["time"]), item["time"])
    )
    for bucket in series:
        bucket["targets"] = sorted(bucket["targets"], key=str)
        bucket["methods"] = sorted(bucket["methods"], key=str)
        bucket["ports"] = sorted(bucket["ports"], key=lambda p: (str(type(p)), p))
    return series
