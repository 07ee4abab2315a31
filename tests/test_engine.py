"""
Tests for the action dispatcher.
"""

from unittest.mock import Mock, patch

import pytest

from box_helper.backend.aur import AurBackend
from box_helper.backend.pacman import PacmanBackend
from box_helper.core.engine import BoxEngine
from box_helper.core.exceptions import CommandError, FetchError
from box_helper.core.interfaces import BoxConfig, PackageEntry, PackageOrigin
from box_helper.search.selector import FzfSelector, NumberedSelector, Selector
from tests.fixtures.sample_data import SAMPLE_PACMAN_INFO_OUTPUT_FR


def community(name, version):
    return PackageEntry(origin=PackageOrigin.COMMUNITY, name=name, version=version, installed=True)


@pytest.fixture
def official(official_entries):
    backend = Mock(spec=PacmanBackend)
    backend.search.return_value = official_entries
    backend.install.return_value = True
    backend.remove.return_value = True
    backend.upgrade.return_value = True
    backend.is_installed.return_value = True
    backend.get_package_info.return_value = None
    return backend


@pytest.fixture
def aur(community_entries):
    backend = Mock(spec=AurBackend)
    backend.search.return_value = community_entries
    backend.install.return_value = True
    backend.get_package_info.return_value = None
    backend.installed_packages.return_value = []
    return backend


@pytest.fixture
def selector():
    return Mock(spec=Selector)


@pytest.fixture
def engine(config, official, aur, selector, reporter):
    return BoxEngine(config, official, aur, selector, reporter)


class TestSearchAndInstall:
    """Test the search pipeline."""

    def test_merged_list_official_first(self, engine):
        assert [e.name for e in engine.search("foo")] == ["foo-core", "foo-aur"]

    def test_pick_community_entry_runs_community_install(self, engine, official, aur, selector):
        selector.select.side_effect = lambda entries, prompt: entries[1]

        assert engine.search_and_install("foo") is True

        aur.install.assert_called_once_with("foo-aur")
        official.install.assert_not_called()
        entries = selector.select.call_args[0][0]
        assert [e.name for e in entries] == ["foo-core", "foo-aur"]

    def test_pick_official_entry_runs_pacman(self, engine, official, aur, selector, output):
        selector.select.side_effect = lambda entries, prompt: entries[0]

        assert engine.search_and_install("foo") is True

        official.install.assert_called_once_with("foo-core")
        aur.install.assert_not_called()
        assert "Adding package: foo-core" in output.getvalue()
        assert "Successfully added foo-core" in output.getvalue()

    def test_same_name_in_both_origins(self, engine, official, aur, selector):
        official.search.return_value = [PackageEntry(PackageOrigin.OFFICIAL, "yay", "1.0")]
        aur.search.return_value = [PackageEntry(PackageOrigin.COMMUNITY, "yay", "12.3.5-1")]
        selector.select.side_effect = lambda entries, prompt: entries[1]

        engine.search_and_install("yay")

        aur.install.assert_called_once_with("yay")
        official.install.assert_not_called()

    def test_cancelled_selection_installs_nothing(self, engine, official, aur, selector):
        selector.select.return_value = None

        assert engine.search_and_install("foo") is False

        official.install.assert_not_called()
        aur.install.assert_not_called()

    def test_numbered_zero_installs_nothing(self, config, official, aur, reporter):
        selector = NumberedSelector(reporter.console, Mock(return_value="0"))
        engine = BoxEngine(config, official, aur, selector, reporter)

        assert engine.search_and_install("foo") is False

        official.install.assert_not_called()
        aur.install.assert_not_called()

    def test_no_results(self, engine, official, aur, selector, output):
        official.search.return_value = []
        aur.search.return_value = []

        assert engine.search_and_install("nothing") is False

        assert "No packages found" in output.getvalue()
        selector.select.assert_not_called()

    def test_official_only_never_queries_aur(self, official, aur, selector, reporter):
        engine = BoxEngine(BoxConfig(official_only=True), official, aur, selector, reporter)
        selector.select.return_value = None

        engine.search_and_install("foo")

        aur.search.assert_not_called()
        assert selector.select.call_args[0][0] == official.search.return_value


class TestInstall:
    """Test installs from each origin."""

    def test_community_install_failure(self, engine, aur, output):
        aur.install.return_value = False

        assert engine.install("foo-aur", is_community=True) is False
        assert "Adding AUR package: foo-aur" in output.getvalue()
        assert "Failed to build/add foo-aur" in output.getvalue()

    def test_community_clone_failure(self, engine, aur, output):
        aur.install.side_effect = FetchError("clone failed")

        assert engine.install("foo-aur", is_community=True) is False
        assert "Failed to clone foo-aur repository" in output.getvalue()

    def test_community_missing_tool(self, engine, aur, output):
        aur.install.side_effect = CommandError("'makepkg' command not found")

        assert engine.install("foo-aur", is_community=True) is False
        assert "makepkg" in output.getvalue()

    def test_community_install_in_official_only_mode(self, official, aur, selector, reporter, output):
        engine = BoxEngine(BoxConfig(official_only=True), official, aur, selector, reporter)

        assert engine.install("foo-aur", is_community=True) is False
        aur.install.assert_not_called()
        assert "official-only" in output.getvalue()

    def test_official_install_failure(self, engine, official, output):
        official.install.return_value = False

        assert engine.install("vim", is_community=False) is False
        assert "Failed to add vim" in output.getvalue()

    def test_official_missing_pacman(self, engine, official, output):
        official.install.side_effect = CommandError("'pacman' command not found")

        assert engine.install("vim", is_community=False) is False
        assert "Failed to add vim" in output.getvalue()


class TestAdd:
    """Test direct installs by name."""

    def test_official_package(self, engine, official, aur):
        official.get_package_info.return_value = PackageEntry(PackageOrigin.OFFICIAL, "vim", "9.1")

        assert engine.add("vim") is True

        official.install.assert_called_once_with("vim")
        aur.get_package_info.assert_not_called()

    def test_community_package(self, engine, official, aur):
        aur.get_package_info.return_value = PackageEntry(PackageOrigin.COMMUNITY, "yay", "12.3.5-1")

        assert engine.add("yay") is True

        aur.install.assert_called_once_with("yay")
        official.install.assert_not_called()

    def test_unknown_package(self, engine, official, aur, output):
        assert engine.add("nope") is False

        assert "Package nope not found" in output.getvalue()
        official.install.assert_not_called()
        aur.install.assert_not_called()

    def test_pacman_unavailable_falls_back_to_aur(self, engine, official, aur):
        official.get_package_info.side_effect = CommandError("'pacman' command not found")
        aur.get_package_info.return_value = PackageEntry(PackageOrigin.COMMUNITY, "yay", "12.3.5-1")

        assert engine.resolve_origin("yay") is PackageOrigin.COMMUNITY

    @patch("box_helper.backend.base.os.geteuid", return_value=1000)
    def test_official_package_with_translated_pacman_output(
        self, mock_geteuid, config, dependency_checker, command_runner, aur, selector, reporter
    ):
        command_runner.responses[("pacman", "-Si")] = (0, SAMPLE_PACMAN_INFO_OUTPUT_FR)
        command_runner.responses[("pacman", "-Q")] = (1, "")
        engine = BoxEngine(config, PacmanBackend(config, dependency_checker), aur, selector, reporter)

        assert engine.add("vim") is True

        assert command_runner.commands_starting_with("sudo", "pacman", "-S") == [["sudo", "pacman", "-S", "vim"]]
        aur.get_package_info.assert_not_called()
        aur.install.assert_not_called()

    def test_official_only_does_not_ask_aur(self, official, aur, selector, reporter):
        engine = BoxEngine(BoxConfig(official_only=True), official, aur, selector, reporter)

        assert engine.add("yay") is False
        aur.get_package_info.assert_not_called()


class TestRemove:
    """Test package removal."""

    def test_not_installed(self, engine, official, output):
        official.is_installed.return_value = False

        assert engine.remove("somepkg") is False

        assert "somepkg is not installed" in output.getvalue()
        official.remove.assert_not_called()

    def test_remove(self, engine, official, output):
        assert engine.remove("somepkg") is True

        official.remove.assert_called_once_with("somepkg", recursive=False)
        assert "Removing somepkg..." in output.getvalue()
        assert "Removed somepkg" in output.getvalue()

    def test_remove_recursive(self, engine, official):
        engine.remove("somepkg", recursive=True)
        official.remove.assert_called_once_with("somepkg", recursive=True)

    def test_remove_failure(self, engine, official, output):
        official.remove.return_value = False

        assert engine.remove("somepkg") is False
        assert "Failed to remove somepkg" in output.getvalue()

    def test_remove_interactive(self, engine, official, selector):
        installed = [community("foo-aur", "1.5-1"), PackageEntry(PackageOrigin.OFFICIAL, "vim", "9.1")]
        official.explicit_packages.return_value = installed
        selector.select.return_value = installed[1]

        assert engine.remove_interactive(recursive=True) is True

        selector.select.assert_called_once_with(installed, prompt="Remove")
        official.remove.assert_called_once_with("vim", recursive=True)

    def test_remove_interactive_cancelled(self, engine, official, selector):
        official.explicit_packages.return_value = [PackageEntry(PackageOrigin.OFFICIAL, "vim", "9.1")]
        selector.select.return_value = None

        assert engine.remove_interactive() is False
        official.remove.assert_not_called()


class TestUpdate:
    """Test bulk updates."""

    def test_official_only_never_queries_aur(self, official, aur, selector, reporter):
        engine = BoxEngine(BoxConfig(official_only=True), official, aur, selector, reporter)

        report = engine.update()

        assert report.system_upgraded is True
        official.upgrade.assert_called_once()
        aur.installed_packages.assert_not_called()
        aur.get_package_info.assert_not_called()

    def test_rebuilds_outdated_packages(self, engine, aur, output):
        aur.installed_packages.return_value = [community("foo-aur", "1.5-1"), community("yay", "12.3.5-1")]
        aur.get_package_info.side_effect = lambda name: {
            "foo-aur": PackageEntry(PackageOrigin.COMMUNITY, "foo-aur", "2.0-1"),
            "yay": PackageEntry(PackageOrigin.COMMUNITY, "yay", "12.3.5-1"),
        }[name]

        report = engine.update()

        aur.install.assert_called_once_with("foo-aur")
        assert report.checked == ["foo-aur", "yay"]
        assert report.updated == ["foo-aur"]
        assert "Updating foo-aur (1.5-1 -> 2.0-1)" in output.getvalue()

    def test_failure_does_not_stop_loop(self, engine, aur, output):
        aur.installed_packages.return_value = [community("one", "1"), community("two", "1")]
        aur.get_package_info.side_effect = lambda name: PackageEntry(PackageOrigin.COMMUNITY, name, "2")
        aur.install.side_effect = [FetchError("clone failed"), True]

        report = engine.update()

        assert aur.install.call_count == 2
        assert report.failed == ["one"]
        assert report.updated == ["two"]
        assert "Failed to update: one" in output.getvalue()

    def test_unknown_foreign_package_is_skipped(self, engine, aur):
        aur.installed_packages.return_value = [community("local-only", "1")]
        aur.get_package_info.return_value = None

        report = engine.update()

        assert report.skipped == ["local-only"]
        aur.install.assert_not_called()

    def test_system_upgrade_failure_continues(self, engine, official, aur, output):
        official.upgrade.return_value = False
        aur.installed_packages.return_value = [community("foo-aur", "1")]
        aur.get_package_info.return_value = PackageEntry(PackageOrigin.COMMUNITY, "foo-aur", "1")

        report = engine.update()

        assert report.system_upgraded is False
        assert "System upgrade failed" in output.getvalue()
        aur.get_package_info.assert_called_once_with("foo-aur")
        assert "AUR packages are up to date" in output.getvalue()

    def test_cannot_list_foreign_packages(self, engine, aur, output):
        aur.installed_packages.side_effect = CommandError("'pacman' command not found")

        report = engine.update()

        assert report.checked == []
        assert "Cannot list AUR packages" in output.getvalue()


class TestFromConfig:
    """Test wiring the engine to the real backends."""

    @patch("box_helper.search.selector.SystemDependencyChecker.check_command_availability",
           return_value=False)
    def test_from_config(self, mock_available):
        workspace = Mock()

        engine = BoxEngine.from_config(BoxConfig(aur_url="https://aur.example.org"), workspace)

        assert isinstance(engine.official, PacmanBackend)
        assert isinstance(engine.community, AurBackend)
        assert engine.community.workspace is workspace
        assert engine.community.local_db is engine.official
        assert isinstance(engine.selector, NumberedSelector)

    @patch("box_helper.search.selector.SystemDependencyChecker.check_command_availability",
           return_value=True)
    def test_from_config_official_only(self, mock_available):
        engine = BoxEngine.from_config(BoxConfig(official_only=True), Mock())

        assert engine.community is None
        assert engine.merger.community is None
        assert isinstance(engine.selector, FzfSelector)
