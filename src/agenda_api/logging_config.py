from __future__ import annotations

import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward records from the standard logging module (uvicorn, fastapi) to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module so loguru reports the right origin
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# PUBLIC_INTERFACE
def setup_logging(level: str = "INFO") -> None:
    """
    Configure loguru as the single log sink.

    Replaces loguru's default handler with a stderr sink at the given level and
    routes the standard logging module through it.
    """
    log_level = level.upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}:{function}:{line}</cyan> | "
            "<level>{message}</level>"
        ),
        backtrace=True,
        diagnose=log_level == "DEBUG",
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logger.debug("Loguru configured. Console log level: {}", log_level)
