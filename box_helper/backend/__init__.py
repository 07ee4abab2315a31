"""
Package backends for box-helper.

This module provides the backends that query and drive the official
repositories (pacman) and the community repository (the AUR).
"""

from box_helper.backend.base import HttpPackageBackend, PackageBackend
from box_helper.backend.pacman import PacmanBackend
from box_helper.backend.aur import AurBackend

__all__ = [
    "PackageBackend",
    "HttpPackageBackend",
    "PacmanBackend",
    "AurBackend"
]
