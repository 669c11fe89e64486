"""Logging helper for console output (and an optional GUI hook)."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGER_NAME = "imageview"


class _SessionIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session"):
            record.session = "-"
        return True


def get_logger(name: str) -> logging.Logger:
    """Return a logger configured for console output.

    Parameters
    ----------
    name : str
        Module name, typically ``__name__``.
    """
    base = logging.getLogger(_LOGGER_NAME)
    if not base.handlers:
        base.setLevel(logging.INFO)
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(module)s session=%(session)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        handler.addFilter(_SessionIdFilter())
        base.addHandler(handler)
        base.propagate = False
    if name.startswith(f"{_LOGGER_NAME}."):
        name = name[len(_LOGGER_NAME) + 1 :]
    logger = logging.getLogger(f"{_LOGGER_NAME}.{name}")
    logger.setLevel(base.level)
    return logger


def set_level(level: int) -> None:
    """Update log level for all handlers."""
    base = logging.getLogger(_LOGGER_NAME)
    base.setLevel(level)
    for handler in base.handlers:
        handler.setLevel(level)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith(f"{_LOGGER_NAME}.") and isinstance(logger, logging.Logger):
            logger.setLevel(level)


def attach_handler(handler: Optional[logging.Handler]) -> None:
    """Optionally attach an extra handler (e.g., a GUI log view)."""
    if handler is None:
        return
    base = logging.getLogger(_LOGGER_NAME)
    handler.addFilter(_SessionIdFilter())
    if handler not in base.handlers:
        base.addHandler(handler)
