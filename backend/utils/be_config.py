"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import os

# Get the absolute path of the project's root directory
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Handle different environments: Docker vs local development
if os.path.exists("/app") and os.getcwd().startswith("/app"):
    # Docker environment: use /app/xxx
    LOG_DIR = "/app/logs"
else:
    # Local development
    LOG_DIR = os.path.join(BASE_DIR, "logs")

LOG_FILE_NAME = "controller.log"
LOG_ROTATION = "50 MB"
LOG_RETENTION = "7 days"

# Identifier validation
MAX_INSTANCE_ID_LENGTH = 64
MAX_TARGET_LENGTH = 2000
METHOD_PATTERN = r"^[A-Za-z0-9_-]+$"
