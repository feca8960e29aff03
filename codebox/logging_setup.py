"""
Logging setup for codebox.
"""

import sys
from typing import Optional

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Replace loguru's default sink with a single stderr sink. Idempotent."""
    global _configured
    if _configured:
        return
    if level is None:
        from codebox.config import get_config
        level = get_config().log_level
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)
    _configured = True
