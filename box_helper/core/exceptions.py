"""
Exceptions for box-helper.

This module contains the exception hierarchy for box-helper operations.
"""


class BoxError(Exception):
    """Base exception for box-helper operations."""
    pass


class ConfigurationError(BoxError):
    """Raised when configuration is invalid."""
    pass


class FetchError(BoxError):
    """Raised when querying a remote repository fails."""
    pass


class CommandError(BoxError):
    """Raised when an external command cannot be started."""
    pass

