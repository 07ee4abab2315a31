"""
Core interfaces for box-helper.

This module contains the data models shared by the backends, the search
pipeline and the action dispatcher.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


DEFAULT_AUR_URL = "https://aur.archlinux.org"
DEFAULT_FZF_OPTIONS = ["--height", "100%", "--border", "--ansi", "--layout=reverse"]


class PackageOrigin(Enum):
    """
    Source a package comes from.
    """
    OFFICIAL = "pacman"
    COMMUNITY = "aur"

    @property
    def tag(self) -> str:
        return f"[{self.value}]"


@dataclass(frozen=True)
class PackageEntry:
    """
    A single package as reported by one source.
    """
    origin: PackageOrigin
    name: str
    version: str
    installed: bool = False
    repository: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_community(self) -> bool:
        return self.origin is PackageOrigin.COMMUNITY


@dataclass
class CommandResult:
    """
    Outcome of one external command.
    """
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


@dataclass
class UpdateReport:
    """
    Summary of a bulk update run.
    """
    system_upgraded: bool = False
    checked: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


@dataclass
class BoxConfig:
    """
    Runtime configuration, built once from file, environment and flags.
    """
    aur_url: str = DEFAULT_AUR_URL
    workspace_dir: Optional[str] = None
    use_fzf: bool = True
    fzf_options: List[str] = field(default_factory=lambda: list(DEFAULT_FZF_OPTIONS))
    official_only: bool = False
    no_confirm: bool = False
    sudo_command: str = "sudo"
    request_timeout: int = 30
    retry_count: int = 3
