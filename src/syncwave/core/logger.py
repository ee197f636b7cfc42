"""Logging configuration and setup."""

import sys

from loguru import logger

from syncwave.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[request_id]}</cyan> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[request_id]} | "
    "{name}:{function}:{line} - {message}"
)


def setup_logging(log_to_file: bool = True) -> None:
    """Configures Loguru for console and (optionally) file output.

    The default handler is replaced by a colorized stderr handler. When
    ``log_to_file`` is set, a rotated and zip-compressed log file is written to
    ``DATA_DIR/logs``. Records outside an HTTP request carry ``request_id="-"``.
    """
    logger.remove()
    logger.configure(extra={"request_id": "-"})

    logger.add(sys.stderr, level=settings.LOG_LEVEL, format=CONSOLE_FORMAT)

    if log_to_file:
        log_file = settings.LOG_PATH
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            compression="zip",
            level=settings.LOG_LEVEL,
            enqueue=True,  # Watchdog thread logs too
            backtrace=True,
            diagnose=False,
            format=FILE_FORMAT,
        )

    logger.info(f"Logging initialized. Data Dir: {settings.DATA_DIR}")
