"""loguru setup shared by the API server and the CLI.

stdlib logging (uvicorn, watchfiles) is routed into loguru.  Everything goes
to stderr: the CLI reserves stdout for its JSON output.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

SERVER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
CLI_FORMAT = "<level>{level: <8}</level> | {message}"

_QUIET_LOGGERS = ("uvicorn.access", "watchfiles.main")


class _InterceptHandler(logging.Handler):
    """Re-emit stdlib records through loguru at the caller's frame."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, compact: bool = False) -> None:
    """Make loguru the only sink.

    ``compact`` drops the timestamp and call site, for one-shot CLI commands.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=CLI_FORMAT if compact else SERVER_FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging initialised (level={}, compact={})", level, compact)
