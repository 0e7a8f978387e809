"""
Utility functions and classes for ArrayFlow
"""

from .logging import LoggerMixin, get_logger, log_execution_time, setup_logging
from .r_utils import RInterface, check_r_packages, r_bool, r_string, r_vector
from .validation import (require_columns, validate_environment,
                         validate_r_environment)

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggerMixin",
    "log_execution_time",
    "validate_environment",
    "validate_r_environment",
    "require_columns",
    "RInterface",
    "check_r_packages",
    "r_string",
    "r_vector",
    "r_bool",
]
