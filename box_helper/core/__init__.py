"""Core components for box-helper."""

from .engine import BoxEngine
from .configuration import ConfigurationManager
from .reporter import Reporter
from .system_dependency_checker import SystemDependencyChecker
from .workspace import ScratchWorkspace
from .interfaces import (
    BoxConfig,
    CommandResult,
    PackageEntry,
    PackageOrigin,
    UpdateReport
)
from .exceptions import (
    BoxError,
    ConfigurationError,
    FetchError,
    CommandError
)

__all__ = [
    "BoxEngine",
    "ConfigurationManager",
    "Reporter",
    "SystemDependencyChecker",
    "ScratchWorkspace",
    "BoxConfig",
    "CommandResult",
    "PackageEntry",
    "PackageOrigin",
    "UpdateReport",
    "BoxError",
    "ConfigurationError",
    "FetchError",
    "CommandError"
]
