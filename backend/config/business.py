"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

# === INSTANCE STATUS ===
INSTANCE_STATUS_ONLINE = "online"
INSTANCE_STATUS_OFFLINE = "offline"

# === CAMPAIGN STATUS ===
CAMPAIGN_STATUS_RUNNING = "running"
CAMPAIGN_STATUS_STOPPED = "stopped"
CAMPAIGN_STATUS_PARTIALLY_STOPPED = "partially_stopped"
CAMPAIGN_STATUS_FAILED = "failed"
CAMPAIGN_STATUS_ERROR = "error"

# === PARTICIPATION STATUS ===
PARTICIPANT_STATUS_RUNNING = "running"
PARTICIPANT_STATUS_STOPPED = "stopped"
PARTICIPANT_STATUS_FAILED = "failed"
PARTICIPANT_STATUS_SKIPPED = "skipped"

# === DIRECTIVES ===
ACTION_START = "start"
ACTION_STOP = "stop"

# === CAMPAIGN LIMITS ===
SUPPORTED_LAYERS = (4, 7)
MIN_DURATION_SECONDS = 0
MAX_DURATION_SECONDS = 3600

# Rendered per layer and sent verbatim to every worker as the start command
COMMAND_TEMPLATES = {
    4: "run --layer 4 --method {method} --target {target} --duration {duration}",
    7: "run --layer 7 --method {method} --url {target} --duration {duration}",
}

# Region recorded when a worker connects without one
DEFAULT_REGION = "None"

UNKNOWN_TARGET = "unknown"
UNKNOWN_METHOD = "unknown"
UNKNOWN_PORT = 0
