"""
Box - a minimal AUR helper.

This package provides one command line front-end for searching, adding,
removing and updating packages from the official Arch Linux repositories and
the Arch User Repository.
"""

__version__ = "0.1.0"

from .core.engine import BoxEngine
from .core.exceptions import BoxError, ConfigurationError, FetchError, CommandError

__all__ = [
    "BoxEngine",
    "BoxError",
    "ConfigurationError",
    "FetchError",
    "CommandError"
]
