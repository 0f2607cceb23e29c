import sys
from loguru import logger
from .config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
    "<level>{message}</level> | {extra}"
)


def setup_logging(level: str | None = None):
    """
    Configure the loguru logger for the service.

    Structured fields passed as keyword arguments (logger.info("msg", quality=85))
    end up in the record's `extra` dict and are rendered at the end of the line.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        backtrace=False,
        diagnose=settings.app_env == "dev",
    )
    logger.info("Logging configured", app=settings.app_name, env=settings.app_env)
    return logger
