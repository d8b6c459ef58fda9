"""Utility modules for configuration, logging, and validation."""

from .config import SimulationConfig
from .logging import setup_logger, get_logger
from .validation import (
    ValidationError,
    InvalidGridError,
    InvalidConfigurationError,
    validate_config
)
from .path_utils import PathValidationError

__all__ = [
    'SimulationConfig',
    'setup_logger',
    'get_logger',
    'ValidationError',
    'InvalidGridError',
    'InvalidConfigurationError',
    'validate_config',
    'PathValidationError'
]
