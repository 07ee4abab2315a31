"""
AUR backend for box-helper.

This module queries the Arch User Repository RPC interface and installs
community packages by cloning their build recipe and running makepkg in the
scratch workspace.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from box_helper.backend.base import HttpPackageBackend
from box_helper.backend.pacman import PacmanBackend
from box_helper.core.exceptions import CommandError, FetchError
from box_helper.core.interfaces import BoxConfig, PackageEntry, PackageOrigin
from box_helper.core.system_dependency_checker import SystemDependencyChecker
from box_helper.core.workspace import ScratchWorkspace


logger = logging.getLogger(__name__)


RPC_PATH = "rpc/"
RPC_VERSION = "5"


class AurBackend(HttpPackageBackend):
    """
    Backend for the Arch User Repository.

    Searches go to the RPC endpoint; installed state comes from the local
    pacman database. Installs clone ``<aur_url>/<name>.git`` into the scratch
    workspace and build it with ``makepkg -si``.
    """

    origin = PackageOrigin.COMMUNITY

    def __init__(
        self,
        local_db: PacmanBackend,
        workspace: ScratchWorkspace,
        config: Optional[BoxConfig] = None,
        dependency_checker: Optional[SystemDependencyChecker] = None
    ):
        """
        Initialize the AUR backend.

        Args:
            local_db: Pacman backend used to read the local package database.
            workspace: Scratch workspace build recipes are cloned into.
            config: Runtime configuration.
            dependency_checker: Runner for external commands.
        """
        config = config or BoxConfig()
        super().__init__(base_url=config.aur_url, config=config, dependency_checker=dependency_checker)
        self.local_db = local_db
        self.workspace = workspace

    def get_repository_name(self) -> str:
        return "aur"

    def search(self, query: str) -> List[PackageEntry]:
        """
        Search the AUR by name and description.

        Args:
            query: Search query.

        Returns:
            Entries in the order the RPC returned them, or an empty list when
            the request fails or the response cannot be read.
        """
        try:
            results = self._rpc({"v": RPC_VERSION, "type": "search", "arg": query})
        except FetchError as e:
            logger.warning(f"AUR search failed: {e}")
            return []

        installed = self._installed_names()
        entries = []
        for item in results:
            entry = self._to_entry(item, installed)
            if entry is not None:
                entries.append(entry)

        logger.debug(f"AUR search for '{query}' returned {len(entries)} entries")
        return entries

    def get_package_info(self, package_name: str) -> Optional[PackageEntry]:
        """
        Look up a package with the RPC info query.

        Args:
            package_name: Exact package name.

        Returns:
            PackageEntry if the AUR has the package, None if it does not or the
            request fails.
        """
        try:
            results = self._rpc([("v", RPC_VERSION), ("type", "info"), ("arg[]", package_name)])
        except FetchError as e:
            logger.warning(f"AUR info query for {package_name} failed: {e}")
            return None

        for item in results:
            if isinstance(item, dict) and item.get("Name") == package_name:
                return self._to_entry(item, self._installed_names())

        return None

    def installed_packages(self) -> List[PackageEntry]:
        """Locally installed packages that came from the AUR."""
        return self.local_db.foreign_packages()

    def install(self, package_name: str) -> bool:
        """
        Clone, build and install a package.

        The per-package build directory is removed afterwards whatever the
        outcome.

        Args:
            package_name: Name of the AUR package.

        Returns:
            True if makepkg succeeded.

        Raises:
            FetchError: If the build recipe cannot be cloned.
            CommandError: If git or makepkg is missing.
        """
        with self.workspace.package_dir(package_name) as build_dir:
            self.fetch_recipe(package_name, build_dir)
            return self.build_and_install(package_name, build_dir)

    def fetch_recipe(self, package_name: str, build_dir: Path) -> None:
        """
        Clone the package's build recipe.

        Raises:
            FetchError: If git exits with a non-zero status.
        """
        url = f"{self.base_url}/{package_name}.git"
        result = self.dependency_checker.execute_command(
            ["git", "clone", url, str(build_dir)], self.get_repository_name()
        )
        if not result.success:
            raise FetchError(f"Failed to clone {url}: {result.stderr.strip()}")

        # git clones an empty repository for unknown package names
        if not (Path(build_dir) / "PKGBUILD").exists():
            raise FetchError(f"No PKGBUILD found in {url}")

    def build_and_install(self, package_name: str, build_dir: Path) -> bool:
        """
        Build and install a cloned recipe with ``makepkg -si``.

        makepkg calls sudo for the install step itself and refuses to run as
        root.
        """
        logger.debug(f"Building {package_name} in {build_dir}")
        command = ["makepkg", "-si"] + self._confirm_flags()
        result = self.dependency_checker.execute_command(
            command, self.get_repository_name(), capture_output=False, cwd=str(build_dir)
        )
        return result.success

    def _rpc(self, params: Any) -> List[Any]:
        """
        Call the RPC endpoint and return its result list.

        Raises:
            FetchError: On transport errors, error payloads or a malformed body.
        """
        data = self._fetch_json(RPC_PATH, params=params)

        if data.get("type") == "error":
            raise FetchError(f"AUR returned an error: {data.get('error', 'unknown error')}")

        results = data.get("results")
        if not isinstance(results, list):
            raise FetchError("AUR response has no results list")

        return results

    def _installed_names(self) -> Set[str]:
        try:
            return self.local_db.installed_names()
        except CommandError as e:
            logger.warning(f"Cannot read the local package database: {e}")
            return set()

    def _to_entry(self, item: Dict[str, Any], installed: Set[str]) -> Optional[PackageEntry]:
        if not isinstance(item, dict):
            return None

        name = item.get("Name")
        version = item.get("Version")
        if not isinstance(name, str) or not isinstance(version, str):
            logger.debug(f"Skipping malformed AUR result: {item!r}")
            return None

        return PackageEntry(
            origin=self.origin,
            name=name,
            version=version,
            installed=name in installed,
            description=item.get("Description")
        )
