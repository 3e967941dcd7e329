import sys
from typing import Optional

from loguru import logger

from .config import LOG_LEVEL, LOG_RETENTION, LOG_ROTATION


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> "
    "<level>{level: <7}</level> "
    "<cyan>{extra[component]}</cyan>: {message}"
)

logger.configure(extra={"component": "portpusher"})


def setup_logging(level: str = LOG_LEVEL, log_path: Optional[str] = None) -> None:
    """Replace loguru's default sink with our console sink, plus an optional file."""
    logger.remove()

    # Log to console
    logger.add(
        sys.stderr,
        level=level,
        format=LOG_FORMAT,
    )

    # Log to a file
    if log_path:
        logger.add(
            log_path,
            rotation=LOG_ROTATION,
            retention=LOG_RETENTION,
            level=level,
            format=LOG_FORMAT,
        )


def get_logger(component: str):
    return logger.bind(component=component)
