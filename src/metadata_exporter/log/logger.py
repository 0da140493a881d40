#!/usr/bin/env python3

"""Loguru stdout sink with stdlib logging routed into it."""

from __future__ import annotations

import logging
import sys

from loguru import logger


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | <cyan>{extra[name]}</cyan> | <level>{message}</level>"
)

LEVEL_ALIASES = {
    "trace": "TRACE",
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
    "critical": "CRITICAL",
    "fatal": "CRITICAL",
    "panic": "CRITICAL",
}


def parse_level(raw_level: str) -> str:
    """Normalize a level name as accepted by ``--log-level``.

    Args:
        raw_level: Level name, case-insensitive.

    Returns:
        str: Loguru level name.

    Raises:
        ValueError: Unknown level.
    """
    level = LEVEL_ALIASES.get(str(raw_level).strip().lower())
    if level is None:
        raise ValueError(f"not a valid log level: {raw_level!r}")
    return level


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(raw_level: str = "info") -> str:
    """Install the stdout sink and route stdlib logging through it.

    Args:
        raw_level: Minimum level name.

    Returns:
        str: Effective loguru level name.
    """
    level = parse_level(raw_level)
    logger.remove()
    logger.configure(extra={"name": "metadata_exporter"})
    logger.add(
        sys.stdout,
        colorize=True,
        level=level,
        format=LOG_FORMAT,
    )
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return level
