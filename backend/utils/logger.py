"""
Author: Charm
Copyright (c) 2025, All Rights Reserved.
"""

import os
import sys

from loguru import logger

from utils.be_config import LOG_DIR, LOG_FILE_NAME, LOG_RETENTION, LOG_ROTATION

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{extra[campaign_id]} | <level>{message}</level>"
)


def setup_logger(log_dir: str = LOG_DIR, level: str = "INFO"):
    """
    Configure the shared loguru logger with a console sink and a rotating file sink.

    The file sink is skipped under tests (TESTING=1) so test runs do not write logs.
    """
    logger.remove()
    logger.configure(extra={"campaign_id": "-"})
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, enqueue=False)

    if os.getenv("TESTING"):
        return logger

    try:
        os.makedirs(log_dir, exist_ok=True)
        logger.add(
            os.path.join(log_dir, LOG_FILE_NAME),
            level=level,
            format=LOG_FORMAT,
            rotation=LOG_ROTATION,
            retention=LOG_RETENTION,
            encoding="utf-8",
            enqueue=True,
        )
    except OSError as e:
        logger.warning("Could not create log directory {}: {}", log_dir, e)
    return logger


setup_logger()

__all__ = ["logger", "setup_logger"]
