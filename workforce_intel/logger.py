"""
Logger setup for the workforce intelligence engine.

Modules log through loguru's shared ``logger``; nothing is configured on
import. Applications that want engine output call ``setup_logger`` once.
"""
import sys
from typing import Optional

from loguru import logger

from workforce_intel.config import config

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <7}</level> | {name}:{function} | <level>{message}</level>"


def setup_logger(level: Optional[str] = None, sink=sys.stderr) -> int:
    """
    Replace loguru's default handler with a single engine handler.

    Args:
        level: Minimum level; defaults to ``config.log_level`` (WI_LOG_LEVEL)
        sink: Any loguru sink, stderr by default

    Returns:
        The loguru handler id, for ``logger.remove`` in callers that swap sinks
    """
    logger.remove()
    return logger.add(
        sink,
        format=LOG_FORMAT,
        level=(level or config.log_level).upper(),
        colorize=sink in (sys.stderr, sys.stdout),
    )
