"""Logging configuration for the application"""
import logging
from typing import Optional

from stripe_cli_demo.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Chatty at INFO; the access log middleware already records every request
QUIET_LOGGERS = ("stripe", "urllib3", "httpx", "uvicorn.access")


def setup_logging(level: Optional[str] = None):
    """Configure the root logger once at startup"""
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
        force=True
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
