"""
Utilities Module
================

Foundation helpers with no dependencies on the rest of the package:
exception hierarchy, standardized result dictionaries, logging setup and
the seeded random source.
"""

from .exceptions import (
    BalanceOptimizationError,
    ConfigurationError,
    InvalidBoundsError,
    EvaluationFailureError,
    InsufficientHistoryError,
    AlreadyRunningError,
    get_exception_summary,
)
from .error_handling import ErrorResultFactory
from .logger import ProgressTracker, SafeLogger, setup_logging
from .random_source import SeededRandom

__all__ = [
    'BalanceOptimizationError',
    'ConfigurationError',
    'InvalidBoundsError',
    'EvaluationFailureError',
    'InsufficientHistoryError',
    'AlreadyRunningError',
    'get_exception_summary',
    'ErrorResultFactory',
    'ProgressTracker',
    'SafeLogger',
    'setup_logging',
    'SeededRandom',
]
