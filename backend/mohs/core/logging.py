import sys

from loguru import logger

from mohs.core.config import get_settings


def init_logging() -> None:
    logger.remove()
    logger.add(
        sink=sys.stdout,
        level=get_settings().log_level.upper(),
        backtrace=True,
        diagnose=False,
    )
