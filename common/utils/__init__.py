"""
Shared utilities for the instrument drivers.
"""

from .tiered_logger import TieredLogger, get_logger
from .error_messages import (
    ErrorTemplate,
    LOCKIN_ERRORS,
    POSITIONER_ERRORS,
    get_error,
    format_error_message,
    report_failure,
)

__all__ = [
    'TieredLogger',
    'get_logger',
    'ErrorTemplate',
    'LOCKIN_ERRORS',
    'POSITIONER_ERRORS',
    'get_error',
    'format_error_message',
    'report_failure',
]
