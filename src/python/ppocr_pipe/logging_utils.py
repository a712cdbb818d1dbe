"""Package logger: colored, stderr only, level from ``PPOCR_LOG_LEVEL``."""

from __future__ import annotations

import logging
import os
from typing import Optional

from colorlog import ColoredFormatter

LOGGER_NAME = "ppocr_pipe"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

_LOGGER: Optional[logging.Logger] = None


def _env_level(default: int) -> int:
    name = os.getenv("PPOCR_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the ``ppocr_pipe`` logger, or the child named after a module.

    stdout is never used: in the command line front end it carries results,
    and an engine launched by another supervisor may share it.
    """
    global _LOGGER
    if _LOGGER is None:
        root = logging.getLogger(LOGGER_NAME)
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                ColoredFormatter(
                    "%(log_color)s[%(levelname)s]%(reset)s %(name)s: %(message)s",
                    log_colors=LOG_COLORS,
                )
            )
            root.addHandler(handler)
        root.setLevel(_env_level(logging.INFO))
        root.propagate = False
        _LOGGER = root
    if name and name != LOGGER_NAME:
        return _LOGGER.getChild(name.rsplit(".", 1)[-1])
    return _LOGGER


def set_verbose(verbose: bool) -> None:
    if verbose:
        get_logger().setLevel(logging.DEBUG)
