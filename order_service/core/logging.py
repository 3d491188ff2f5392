import sys
from loguru import logger
from order_service.core.config import settings

_configured = False

def configure_logging(level: str | None = None) -> None:
    """Install a single stderr sink at the configured level.

    Safe to call more than once; later calls replace the sink.
    """
    global _configured
    logger.remove()
    logger.configure(extra={"name": "order_service"})
    logger.add(
        sink=sys.stderr,
        level=(level or settings.LOG_LEVEL).upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )
    _configured = True

def get_logger(name: str = "order_service"):
    """Return the application logger bound to ``name``."""
    if not _configured:
        configure_logging()
    return logger.bind(name=name)
