"""
Pytest configuration and fixtures for box-helper tests.
"""

import io
from typing import Dict, List, Optional
from unittest.mock import Mock

import pytest
from rich.console import Console

from box_helper.core.interfaces import BoxConfig, CommandResult, PackageEntry, PackageOrigin
from box_helper.core.reporter import Reporter
from box_helper.core.system_dependency_checker import SystemDependencyChecker


class FakeCommandRunner:
    """
    Stand-in for SystemDependencyChecker.execute_command.

    Responses are looked up by the command's leading words; every call is
    recorded in ``calls``.
    """

    def __init__(self, responses: Optional[Dict[tuple, object]] = None):
        self.responses = responses or {}
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []

    def __call__(self, command, provider, capture_output=True, cwd=None, input_text=None, env=None):
        self.calls.append(list(command))
        self.kwargs.append({
            "capture_output": capture_output, "cwd": cwd, "input_text": input_text, "env": env
        })

        for length in range(len(command), 0, -1):
            response = self.responses.get(tuple(command[:length]))
            if response is None:
                continue
            if callable(response):
                response = response(command, cwd)
            if isinstance(response, Exception):
                raise response
            if isinstance(response, CommandResult):
                return response
            returncode, stdout = response
            return CommandResult(command=list(command), returncode=returncode, stdout=stdout)

        return CommandResult(command=list(command), returncode=0)

    def commands_starting_with(self, *prefix: str) -> List[List[str]]:
        return [call for call in self.calls if tuple(call[:len(prefix)]) == prefix]


@pytest.fixture
def config():
    """Create a test configuration."""
    return BoxConfig(
        aur_url="https://aur.example.org",
        request_timeout=5,   # Shorter timeout
        retry_count=0        # No retries in tests
    )


@pytest.fixture
def command_runner():
    """Create a recording command runner."""
    return FakeCommandRunner()


@pytest.fixture
def dependency_checker(command_runner):
    """Create a dependency checker whose commands go to the fake runner."""
    checker = Mock(spec=SystemDependencyChecker)
    checker.execute_command.side_effect = command_runner
    checker.check_command_availability.return_value = True
    return checker


@pytest.fixture
def output():
    """Capture everything printed through the reporter."""
    return io.StringIO()


@pytest.fixture
def reporter(output):
    """Create a reporter writing plain text to the output buffer."""
    return Reporter(Console(file=output, force_terminal=False, color_system=None, width=200))


@pytest.fixture
def official_entries():
    """Official search results for the query 'foo'."""
    return [
        PackageEntry(origin=PackageOrigin.OFFICIAL, name="foo-core", version="1.0", installed=True),
    ]


@pytest.fixture
def community_entries():
    """Community search results for the query 'foo'."""
    return [
        PackageEntry(origin=PackageOrigin.COMMUNITY, name="foo-aur", version="2.0"),
    ]
