"""Logging configuration for applications embedding onemit.

The package logs through loguru and is disabled by default, so importing it
stays silent. Call ``setup_logging`` to route its messages (and stdlib
``logging`` records, ``asyncio`` included) to stderr.
"""

import logging
import sys

from loguru import logger

import onemit


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages toward loguru."""

    def emit(self, record):
        # Get corresponding loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where the logged message originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: str | None = None):
    """Configure loguru logging and enable the package's log output.

    Args:
        log_level: Log level to use. Defaults to ``Settings.log_level``
                   (``ONEMIT_LOG_LEVEL``).
    """
    if log_level is None:
        from onemit.settings import get_settings

        log_level = get_settings().log_level

    # Ensure log level is uppercase
    log_level = log_level.upper()

    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=log_level,
        colorize=True,
    )
    logger.enable(onemit.__name__)

    logger.info(f"Log level set to: {log_level}")

    # Redirect all standard logging to loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Handlers scheduled on the loop report unhandled errors through asyncio's logger
    logging.getLogger("asyncio").setLevel(log_level)
