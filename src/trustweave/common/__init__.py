"""Common utilities - logging, config, exceptions."""

from trustweave.common.logging.logger import get_logger
from trustweave.common.config import Config, get_config, reset_config
from trustweave.common.exceptions import (
    TrustWeaveException,
    ConfigurationError,
    InvalidInputError,
    ProcessingFailure,
    ModelUpdateError,
)

__all__ = [
    # Logging
    "get_logger",
    # Config
    "Config",
    "get_config",
    "reset_config",
    # Exceptions
    "TrustWeaveException",
    "ConfigurationError",
    "InvalidInputError",
    "ProcessingFailure",
    "ModelUpdateError",
]
