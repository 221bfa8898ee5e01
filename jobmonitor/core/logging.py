import logging
import sys
from typing import Any

from loguru import logger

from jobmonitor.config import get_settings

PLAIN_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message} | {extra}"
DEBUG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | {extra}"
)

# stdlib loggers routed into loguru
INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "sqlalchemy.engine",
    "alembic",
    "apscheduler",
    "watchfiles",
    "httpx",
)


class InterceptHandler(logging.Handler):
    """Intercept stdlib logging and redirect to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _quiet_polling_filter(record: dict[str, Any]) -> bool:
    """Keep health checks and empty scheduler ticks out of INFO output."""
    message = record.get("message", "")
    if "/health" in message or message == "scheduled_csv_import_no_files":
        return bool(record["level"].no <= 10)  # DEBUG level
    return True


def setup_logging() -> None:
    """
    Configure loguru for the application.

    Console output goes to stderr. When LOG_FILE is set, the same records are
    also written to a rotating file so import history survives restarts.
    """
    settings = get_settings()
    level = "DEBUG" if settings.debug else "INFO"

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format=DEBUG_FORMAT if settings.debug else PLAIN_FORMAT,
        filter=None if settings.debug else _quiet_polling_filter,
        backtrace=True,
        diagnose=settings.debug,
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=level,
            format=PLAIN_FORMAT,
            filter=_quiet_polling_filter,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
            enqueue=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in INTERCEPTED_LOGGERS:
        logging.getLogger(name).handlers = [InterceptHandler()]

    # watchfiles logs every raw change batch at INFO
    logging.getLogger("watchfiles.main").setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Get a logger bound to a name."""
    return logger.bind(name=name)
