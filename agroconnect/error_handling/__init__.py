"""
Error handling module for AgroConnect.

Provides the failure taxonomy and its mapping onto HTTP responses.
"""

from .errors import (
    LifecycleError,
    NotFoundError,
    InvalidStateError,
    ForbiddenError,
    InvalidArgumentError,
    AuthenticationError,
)
from .error_handler import ErrorHandler

__all__ = [
    'LifecycleError',
    'NotFoundError',
    'InvalidStateError',
    'ForbiddenError',
    'InvalidArgumentError',
    'AuthenticationError',
    'ErrorHandler',
]
