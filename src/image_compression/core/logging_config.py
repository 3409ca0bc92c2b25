"""Logger setup shared by the handler, the services and the CLI."""

import os
import sys
import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "image-compression"

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = getattr(logging, name, logging.INFO)
    return resolved if isinstance(resolved, int) else logging.INFO


def _build_formatter(format_type: str) -> logging.Formatter:
    if os.getenv("LOG_FORMAT", format_type).lower() == "structured":
        return logging.Formatter(STRUCTURED_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(SIMPLE_FORMAT)


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Return the named logger, attaching a stdout handler on first use.

    Args:
        name: Logger name
        level: Level name such as ``"DEBUG"``; falls back to ``LOG_LEVEL``,
            then INFO. Unknown names resolve to INFO.
        format_type: ``"structured"`` or ``"simple"``; ``LOG_FORMAT`` wins
            when set

    Returns:
        The configured logger. It does not propagate to the root logger, so
        the Lambda runtime's own root handler never prints a line twice.
    """
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_build_formatter(format_type))
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """Shorthand for :func:`setup_logger` with environment defaults."""
    return setup_logger(name)
