"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import math
import re
from typing import Any, Dict, List, Optional

ANSI_ESCAPE_RE = re.compile(r"\x1B\[[0-9;]*m")

TIME_RE = re.compile(r"\[(\d{2}:\d{2}:\d{2})")
TARGET_RE = re.compile(r"Target:\s*([^,]+)")
PORT_RE = re.compile(r"Port:\s*(\d+)")
METHOD_RE = re.compile(r"Method:\s*(\w+)")
PPS_RE = re.compile(r"PPS:\s*([\d.]+k)")
BPS_RE = re.compile(r"BPS:\s*([\d.]+)\s*MB")
PERCENTAGE_RE = re.compile(r"(\d+)%")
LEADING_NUMBER_RE = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+))")


def _group(pattern: re.Pattern, line: str) -> Optional[str]:
    match = pattern.search(line)
    return match.group(1) if match else None


def parse_line(line: Any) -> Dict[str, Any]:
    """
    Extract telemetry fields from one line of worker output.

    Every field is matched on its own; a field that is absent or malformed is
    returned as None and the rest of the line is still used.
    """
    clean_line = ANSI_ESCAPE_RE.sub("", line if isinstance(line, str) else str(line))

    target = _group(TARGET_RE, clean_line)
    port = _group(PORT_RE, clean_line)
    bps = _group(BPS_RE, clean_line)
    percentage = _group(PERCENTAGE_RE, clean_line)

    return {
        "time": _group(TIME_RE, clean_line),
        "Target": target.strip() if target else None,
        "Port": int(port) if port else None,
        "Method": _group(METHOD_RE, clean_line),
        "PPS": _group(PPS_RE, clean_line),
        "BPS": f"{bps} MB" if bps else None,
        "percentage": f"{percentage}%" if percentage else None,
    }


def parse_output(output: Any) -> List[Dict[str, Any]]:
    """Parse captured worker output into one record per line, order preserved."""
    if not isinstance(output, list):
        return []
    return [parse_line(line) for line in output]


def _parse_scaled(value: Optional[str], suffix: str) -> float:
    """Read the leading number of a value, so ``"1.2.3"`` reads as ``1.2``."""
    if not value:
        return 0
    match = LEADING_NUMBER_RE.match(str(value).replace(suffix, ""))
    if not match:
        return 0
    number = float(match.group(1))
    return number if math.isfinite(number) else 0


def parse_bps(bps: Optional[str]) -> float:
    """``"55.36 MB"`` -> ``55.36``; missing or unparsable values count as 0."""
    return _parse_scaled(bps, " MB")


def parse_pps(pps: Optional[str]) -> float:
    """``"54.06k"`` -> ``54.06``; missing or unparsable values count as 0."""
    return _parse_scaled(pps, "k")
