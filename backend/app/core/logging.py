import logging
import sys

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging() -> None:
    """Send application logs to stdout at the configured level"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))

    logger = logging.getLogger("app")
    logger.handlers = [handler]
    logger.setLevel(settings.LOG_LEVEL.upper())
    logger.propagate = False
