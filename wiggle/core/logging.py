"""
Unified logging configuration using Loguru.

Intercepts standard library logging and routes it through Loguru.
Both processes write to the shared log file so the console UI can
show what the background worker is doing.
"""

import logging
import sys
from pathlib import Path

from loguru import logger

from wiggle.config import settings


class InterceptHandler(logging.Handler):
    """
    Default handler from examples in loguru documentation.
    See https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
    """

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(console: bool = True, process_name: str = "main") -> None:
    """Configure logging for one process.

    Args:
        console: Also log to stderr. The interactive UI turns this off so
            log lines don't tear through the menus.
        process_name: Tag added to every record ("main" or "worker").
    """

    # intercept everything at the root logger
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # remove every other handler's handlers and propagate to root logger
    for name in logging.root.manager.loggerDict.keys():
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    # configure loguru
    logger.remove()  # Remove default handler
    logger.configure(extra={"process_name": process_name})

    # 1. Console handler (stderr)
    if console:
        logger.add(
            sys.stderr,
            level="DEBUG" if settings.debug else "INFO",
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <magenta>{extra[process_name]}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        )

    # 2. File handler, shared by both processes
    log_file = Path(settings.log_file).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        str(log_file),
        rotation="10 MB",  # Rotate when file reaches 10MB
        retention="1 week",  # Keep logs for 1 week
        compression="zip",  # Compress rotated logs
        level="DEBUG" if settings.debug else "INFO",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[process_name]} | {name}:{function}:{line} - {message}",
        enqueue=True,  # Safe across the two processes
        backtrace=True,
        diagnose=False,
    )

    logger.info(f"Logging initialized via Loguru ({process_name})")
