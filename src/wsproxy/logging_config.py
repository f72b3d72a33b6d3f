"""Logging for applications embedding wsproxy (the CLI, a gateway host).

The package only emits through ``loguru.logger`` and is disabled on import, so a
host that never configures logging sees nothing. ``setup_logging()`` turns the
``wsproxy`` records on, installs one stderr sink and pulls the HTTP client's
stdlib loggers (httpx, httpcore) into the same sink.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable

from loguru import logger

PACKAGE = "wsproxy"
HTTP_LOGGERS = ("httpx", "httpcore")

_TEXT_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Forward stdlib records into loguru, attributed to the original caller."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore[assignment]
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(*, level: str = "INFO", json: bool = False, intercept: Iterable[str] = HTTP_LOGGERS) -> int:
    """Enable wsproxy logging with a single stderr sink.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ...).
        json: Emit one JSON object per record instead of coloured text.
        intercept: stdlib logger names routed into loguru.

    Returns:
        The loguru sink id, for ``logger.remove(sink_id)``.
    """
    logger.remove()
    logger.enable(PACKAGE)
    if json:
        sink_id = logger.add(sys.stderr, level=level, serialize=True)
    else:
        sink_id = logger.add(sys.stderr, level=level, format=_TEXT_FORMAT)

    handler = InterceptHandler()
    for name in intercept:
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = [handler]
        stdlib_logger.propagate = False
    return sink_id
