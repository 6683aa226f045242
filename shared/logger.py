"""Logging setup shared by all tools."""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

_LOG_FORMAT = "%(message)s"
_DATE_FORMAT = "[%X]"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger. Handlers are attached by setup_logger."""
    return logging.getLogger(name)


def setup_logger(
    name: Optional[str],
    level: Union[str, int] = "INFO",
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Configure a logger with a rich handler writing to stderr.

    Calling this more than once for the same logger only updates the level.

    Args:
        name: Logger name (usually the tool package)
        level: Log level name or number
        console: Console to log to (stderr console if None)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(handler)

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger
