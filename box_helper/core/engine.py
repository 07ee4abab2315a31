"""
Action dispatcher for box-helper.

This module provides the BoxEngine class, which ties the backends, the result
merger and the selector together and carries out the search, add, remove and
update operations.
"""

import logging
from typing import List, Optional

from rich.console import Console

from box_helper.backend.aur import AurBackend
from box_helper.backend.pacman import PacmanBackend
from box_helper.core.exceptions import CommandError, FetchError
from box_helper.core.interfaces import BoxConfig, PackageEntry, PackageOrigin, UpdateReport
from box_helper.core.reporter import Reporter
from box_helper.core.system_dependency_checker import SystemDependencyChecker
from box_helper.core.workspace import ScratchWorkspace
from box_helper.search.merger import ResultMerger
from box_helper.search.selector import Selector, create_selector


logger = logging.getLogger(__name__)


class BoxEngine:
    """
    Dispatches package operations to the official and community backends.

    Every operation reports its outcome through the reporter and returns
    whether it succeeded; failures of one package never raise out of the
    engine.
    """

    def __init__(
        self,
        config: BoxConfig,
        official: PacmanBackend,
        community: Optional[AurBackend],
        selector: Selector,
        reporter: Optional[Reporter] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Runtime configuration.
            official: Backend for the official repositories.
            community: Backend for the community repository, None in
                official-only mode.
            selector: Selector used for interactive choices.
            reporter: Output for status messages.
        """
        self.config = config
        self.official = official
        self.community = None if config.official_only else community
        self.selector = selector
        self.reporter = reporter or Reporter()
        self.merger = ResultMerger(self.official, self.community)

    @classmethod
    def from_config(
        cls,
        config: BoxConfig,
        workspace: ScratchWorkspace,
        console: Optional[Console] = None
    ) -> "BoxEngine":
        """
        Build an engine wired to the real system tools.

        Args:
            config: Runtime configuration.
            workspace: Scratch workspace for community builds.
            console: Console for all output.

        Returns:
            A ready BoxEngine.
        """
        dependency_checker = SystemDependencyChecker()
        official = PacmanBackend(config, dependency_checker)
        community = None
        if not config.official_only:
            community = AurBackend(official, workspace, config, dependency_checker)

        reporter = Reporter(console)
        selector = create_selector(config, reporter.console, dependency_checker)
        return cls(config, official, community, selector, reporter)

    def search(self, query: str) -> List[PackageEntry]:
        """Search every enabled source and merge the results."""
        return self.merger.search(query)

    def search_and_install(self, query: str) -> bool:
        """
        Search, let the user pick one result and install it.

        Args:
            query: Search query.

        Returns:
            True if a package was installed.
        """
        entries = self.search(query)
        if not entries:
            self.reporter.error("No packages found")
            return False

        selected = self.selector.select(entries, prompt="Add")
        if selected is None:
            logger.debug("Selection cancelled")
            return False

        return self.install(selected.name, selected.is_community)

    def install(self, package_name: str, is_community: bool) -> bool:
        """
        Install one package from the given origin.

        Args:
            package_name: Name of the package.
            is_community: Build from the community repository instead of
                installing from the official repositories.

        Returns:
            True if the package was installed.
        """
        if is_community:
            return self._install_community(package_name)

        self.reporter.step("Adding package: ", package_name, PackageOrigin.OFFICIAL)
        try:
            installed = self.official.install(package_name)
        except CommandError as e:
            self.reporter.error(f"Failed to add {package_name}: {e}")
            return False

        if installed:
            self.reporter.success(f"Successfully added {package_name}")
        else:
            self.reporter.error(f"Failed to add {package_name}")
        return installed

    def _install_community(self, package_name: str) -> bool:
        if self.community is None:
            self.reporter.error(
                f"Cannot add {package_name}: the AUR is disabled in official-only mode"
            )
            return False

        self.reporter.step("Adding AUR package: ", package_name, PackageOrigin.COMMUNITY)
        try:
            installed = self.community.install(package_name)
        except FetchError as e:
            logger.debug(f"Recipe fetch failed: {e}")
            self.reporter.error(f"Failed to clone {package_name} repository")
            return False
        except CommandError as e:
            self.reporter.error(f"Failed to build/add {package_name}: {e}")
            return False

        if installed:
            self.reporter.success(f"Successfully added {package_name}")
        else:
            self.reporter.error(f"Failed to build/add {package_name}")
        return installed

    def resolve_origin(self, package_name: str) -> Optional[PackageOrigin]:
        """
        Find out which source provides a package.

        The official sync databases are asked first, then the AUR info
        endpoint (unless in official-only mode).

        Args:
            package_name: Exact package name.

        Returns:
            The providing origin, or None if no source knows the package.
        """
        try:
            if self.official.get_package_info(package_name) is not None:
                return PackageOrigin.OFFICIAL
        except CommandError as e:
            logger.warning(f"Cannot query the official repositories: {e}")

        if self.community is not None and self.community.get_package_info(package_name) is not None:
            return PackageOrigin.COMMUNITY

        return None

    def add(self, package_name: str) -> bool:
        """
        Install a package by exact name, resolving its origin first.

        Args:
            package_name: Exact package name.

        Returns:
            True if the package was installed.
        """
        origin = self.resolve_origin(package_name)
        if origin is None:
            self.reporter.error(f"Package {package_name} not found")
            return False

        return self.install(package_name, origin is PackageOrigin.COMMUNITY)

    def remove(self, package_name: str, recursive: bool = False) -> bool:
        """
        Remove an installed package.

        Args:
            package_name: Name of the package.
            recursive: Also remove dependencies nothing else needs.

        Returns:
            True if the package was removed.
        """
        try:
            installed = self.official.is_installed(package_name)
        except CommandError as e:
            self.reporter.error(f"Failed to remove {package_name}: {e}")
            return False

        if not installed:
            self.reporter.error(f"{package_name} is not installed")
            return False

        self.reporter.error(f"Removing {package_name}...")
        try:
            removed = self.official.remove(package_name, recursive=recursive)
        except CommandError as e:
            self.reporter.error(f"Failed to remove {package_name}: {e}")
            return False

        if removed:
            self.reporter.success(f"Removed {package_name}")
        else:
            self.reporter.error(f"Failed to remove {package_name}")
        return removed

    def remove_interactive(self, recursive: bool = False) -> bool:
        """
        Let the user pick an explicitly installed package and remove it.

        Args:
            recursive: Also remove dependencies nothing else needs.

        Returns:
            True if a package was removed.
        """
        try:
            entries = self.official.explicit_packages()
        except CommandError as e:
            self.reporter.error(f"Cannot list installed packages: {e}")
            return False

        if not entries:
            self.reporter.error("No installed packages found")
            return False

        selected = self.selector.select(entries, prompt="Remove")
        if selected is None:
            logger.debug("Selection cancelled")
            return False

        return self.remove(selected.name, recursive=recursive)

    def update(self) -> UpdateReport:
        """
        Upgrade the system, then rebuild outdated AUR packages.

        The system upgrade always runs and its failure does not stop the AUR
        pass. Each AUR package is handled on its own; one failure never aborts
        the rest.

        Returns:
            UpdateReport summarizing the run.
        """
        report = UpdateReport()

        self.reporter.step("Updating pacman packages...", origin=PackageOrigin.OFFICIAL)
        try:
            report.system_upgraded = self.official.upgrade()
        except CommandError as e:
            logger.debug(f"System upgrade could not run: {e}")
            report.system_upgraded = False

        if not report.system_upgraded:
            self.reporter.error("System upgrade failed")

        if self.community is None:
            return report

        self.reporter.step("Checking AUR updates...", origin=PackageOrigin.COMMUNITY)
        try:
            foreign = self.community.installed_packages()
        except CommandError as e:
            self.reporter.error(f"Cannot list AUR packages: {e}")
            return report

        for local in foreign:
            report.checked.append(local.name)

            remote = self.community.get_package_info(local.name)
            if remote is None:
                logger.warning(f"{local.name} is not in the AUR, skipping")
                report.skipped.append(local.name)
                continue

            if remote.version == local.version:
                continue

            self.reporter.detail(f"Updating {local.name} ({local.version} -> {remote.version})")
            if self.install(local.name, is_community=True):
                report.updated.append(local.name)
            else:
                report.failed.append(local.name)

        if report.failed:
            self.reporter.error(f"Failed to update: {', '.join(report.failed)}")
        elif not report.updated:
            self.reporter.success("AUR packages are up to date")

        return report
