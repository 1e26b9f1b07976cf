"""Centralized logging configuration.

Modules log through ``logging.getLogger(__name__)``; the service wires a
single handler onto the ``trustweave`` package logger at start-up so every
child logger inherits it.
"""

import logging
from typing import Optional

PACKAGE_LOGGER = "trustweave"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(threadName)s - %(message)s'


def get_logger(name: str = PACKAGE_LOGGER, level: Optional[str] = None) -> logging.Logger:
    """Get a configured logger instance.

    A stream handler is attached only once per logger, so repeated
    service construction in one process does not duplicate output.
    """
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(getattr(logging, level.upper()))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
