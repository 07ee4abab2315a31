"""
Pacman backend for box-helper.

This module drives the system package manager for the official Arch Linux
repositories: searching the sync databases, querying the local database and
running install, removal and system upgrade transactions.
"""

import logging
import re
from typing import Dict, List, Optional, Set

from box_helper.backend.base import PackageBackend
from box_helper.core.exceptions import CommandError
from box_helper.core.interfaces import CommandResult, PackageEntry, PackageOrigin


logger = logging.getLogger(__name__)


# Header line of `pacman -Ss` output, e.g. "extra/vim 9.1.0-1 (group) [installed]"
SEARCH_HEADER_PATTERN = re.compile(r'^(?P<repo>[^\s/]+)/(?P<name>\S+)\s+(?P<version>\S+)(?P<rest>.*)$')
INSTALLED_MARKER = "[installed"

# Field names and markers in query output are translated by pacman
QUERY_ENV = {"LC_ALL": "C"}


def parse_search_output(output: str) -> List[PackageEntry]:
    """
    Parse the output of `pacman -Ss`.

    Args:
        output: Raw standard output of the search.

    Returns:
        Entries in the order pacman printed them.
    """
    entries: List[Dict[str, object]] = []

    for line in output.splitlines():
        if not line.strip():
            continue

        # Descriptions are indented below their header line
        if line[0].isspace():
            if entries and entries[-1]["description"] is None:
                entries[-1]["description"] = line.strip()
            continue

        match = SEARCH_HEADER_PATTERN.match(line)
        if not match:
            logger.debug(f"Skipping unrecognized pacman search line: {line!r}")
            continue

        entries.append({
            "repository": match.group("repo"),
            "name": match.group("name"),
            "version": match.group("version"),
            "installed": INSTALLED_MARKER in match.group("rest"),
            "description": None,
        })

    return [PackageEntry(origin=PackageOrigin.OFFICIAL, **entry) for entry in entries]


def parse_query_output(output: str) -> Dict[str, str]:
    """
    Parse `pacman -Q`-style "name version" lines.

    Args:
        output: Raw standard output of the query.

    Returns:
        Mapping of package name to installed version, in output order.
    """
    packages = {}
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2:
            packages[parts[0]] = parts[1]
    return packages


def parse_info_output(output: str) -> Dict[str, str]:
    """
    Parse the "Key : Value" blocks printed by `pacman -Si`.

    Only the first package block is read.

    Args:
        output: Raw standard output of the info query.

    Returns:
        Mapping of field name to value.
    """
    fields = {}
    current_key = None
    for line in output.splitlines():
        if not line.strip():
            if fields:
                break
            continue
        if " : " in line and not line[0].isspace():
            key, value = line.split(" : ", 1)
            current_key = key.strip()
            fields[current_key] = value.strip()
        elif current_key:
            # Continuation of a wrapped value
            fields[current_key] = f"{fields[current_key]} {line.strip()}"
    return fields


class PacmanBackend(PackageBackend):
    """
    Backend for the official repositories managed by pacman.

    Every method maps to one pacman invocation. Read-only queries capture
    output; transactions share the terminal so pacman can prompt.
    """

    origin = PackageOrigin.OFFICIAL

    def get_repository_name(self) -> str:
        return "pacman"

    def search(self, query: str) -> List[PackageEntry]:
        """
        Search the sync databases.

        Args:
            query: Search query, passed to `pacman -Ss`.

        Returns:
            Matching entries, or an empty list when nothing matches or pacman
            cannot be run.
        """
        try:
            result = self._run(["pacman", "-Ss", query])
        except CommandError as e:
            logger.warning(f"Official repository search failed: {e}")
            return []

        # pacman exits with 1 when nothing matches
        if not result.success:
            return []

        entries = parse_search_output(result.stdout)
        logger.debug(f"pacman search for '{query}' returned {len(entries)} entries")
        return entries

    def get_package_info(self, package_name: str) -> Optional[PackageEntry]:
        """
        Look up a package in the sync databases with `pacman -Si`.

        Args:
            package_name: Exact package name.

        Returns:
            PackageEntry if an official repository provides the package.

        Raises:
            CommandError: If pacman cannot be run.
        """
        result = self._run(["pacman", "-Si", package_name])
        if not result.success:
            return None

        # A zero exit status means a sync database has the package
        fields = parse_info_output(result.stdout)
        name = fields.get("Name", package_name)

        return PackageEntry(
            origin=self.origin,
            name=name,
            version=fields.get("Version", ""),
            installed=self.is_installed(name),
            repository=fields.get("Repository"),
            description=fields.get("Description")
        )

    def is_installed(self, package_name: str) -> bool:
        """
        Check the local database for a package.

        Raises:
            CommandError: If pacman cannot be run.
        """
        return self._run(["pacman", "-Q", package_name]).success

    def installed_names(self) -> Set[str]:
        """
        Names of every installed package.

        Raises:
            CommandError: If pacman cannot be run.
        """
        result = self._run(["pacman", "-Qq"])
        return {line.strip() for line in result.stdout.splitlines() if line.strip()}

    def foreign_packages(self) -> List[PackageEntry]:
        """
        Installed packages not found in any sync database (`pacman -Qm`).

        These are the packages built from the community repository.

        Raises:
            CommandError: If pacman cannot be run.
        """
        result = self._run(["pacman", "-Qm"])
        return [
            PackageEntry(origin=PackageOrigin.COMMUNITY, name=name, version=version, installed=True)
            for name, version in parse_query_output(result.stdout).items()
        ]

    def explicit_packages(self) -> List[PackageEntry]:
        """
        Explicitly installed packages, tagged by origin.

        Raises:
            CommandError: If pacman cannot be run.
        """
        foreign = {entry.name for entry in self.foreign_packages()}
        result = self._run(["pacman", "-Qe"])

        return [
            PackageEntry(
                origin=PackageOrigin.COMMUNITY if name in foreign else PackageOrigin.OFFICIAL,
                name=name,
                version=version,
                installed=True
            )
            for name, version in parse_query_output(result.stdout).items()
        ]

    def install(self, package_name: str) -> bool:
        command = self._privileged(["pacman", "-S"] + self._confirm_flags() + [package_name])
        return self._run(command, capture_output=False).success

    def remove(self, package_name: str, recursive: bool = False) -> bool:
        """
        Remove an installed package.

        Args:
            package_name: Name of the package to remove.
            recursive: Also remove dependencies no other package needs.

        Returns:
            True if pacman reported success.
        """
        operation = "-Rs" if recursive else "-R"
        command = self._privileged(["pacman", operation] + self._confirm_flags() + [package_name])
        return self._run(command, capture_output=False).success

    def upgrade(self) -> bool:
        """Run a full system upgrade with `pacman -Syu`."""
        command = self._privileged(["pacman", "-Syu"] + self._confirm_flags())
        return self._run(command, capture_output=False).success

    def _run(self, command: List[str], capture_output: bool = True) -> CommandResult:
        # Transactions keep the user's locale for their prompts
        return self.dependency_checker.execute_command(
            command,
            self.get_repository_name(),
            capture_output=capture_output,
            env=QUERY_ENV if capture_output else None
        )
