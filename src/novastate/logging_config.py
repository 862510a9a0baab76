"""Logging setup for hosts embedding the engine."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from .settings import EngineSettings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(
    settings: EngineSettings | None = None, *, stream: TextIO | None = None
) -> logging.Logger:
    """Attach a single stream handler to the ``novastate`` logger.

    Calling this repeatedly replaces the previously installed handler instead
    of stacking duplicates.
    """

    settings = settings or EngineSettings()
    logger = logging.getLogger("novastate")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(settings.log_level)
    return logger


__all__ = ["LOG_FORMAT", "configure_logging"]
