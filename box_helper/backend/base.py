"""
Base classes and interfaces for package backends.

This module provides the abstract base class every package source implements
and a base class for sources that are queried over HTTP.
"""

import abc
import logging
import os
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from urllib3.util.retry import Retry

from box_helper.core.exceptions import FetchError
from box_helper.core.interfaces import BoxConfig, PackageEntry, PackageOrigin
from box_helper.core.system_dependency_checker import SystemDependencyChecker


logger = logging.getLogger(__name__)


class PackageBackend(abc.ABC):
    """
    Abstract base class for package backends.

    A backend turns search terms into PackageEntry records for one origin and
    carries out installs from that origin by calling external tools.
    """

    origin: PackageOrigin

    def __init__(
        self,
        config: Optional[BoxConfig] = None,
        dependency_checker: Optional[SystemDependencyChecker] = None
    ):
        """
        Initialize the backend.

        Args:
            config: Runtime configuration. If None, uses the defaults.
            dependency_checker: Runner for external commands.
        """
        self.config = config or BoxConfig()
        self.dependency_checker = dependency_checker or SystemDependencyChecker()

    @abc.abstractmethod
    def get_repository_name(self) -> str:
        """
        Get the name of the repository.

        Returns:
            Name of the repository.
        """
        pass

    @abc.abstractmethod
    def search(self, query: str) -> List[PackageEntry]:
        """
        Search for packages matching the query.

        Failures of the source degrade to an empty list.

        Args:
            query: Search query.

        Returns:
            List of PackageEntry objects in the order the source reports them.
        """
        pass

    @abc.abstractmethod
    def get_package_info(self, package_name: str) -> Optional[PackageEntry]:
        """
        Look up a single package by exact name.

        Args:
            package_name: Name of the package.

        Returns:
            PackageEntry if the source knows the package, None otherwise.
        """
        pass

    @abc.abstractmethod
    def install(self, package_name: str) -> bool:
        """
        Install a package from this source.

        Args:
            package_name: Name of the package to install.

        Returns:
            True if the external tools reported success.
        """
        pass

    def _privileged(self, command: List[str]) -> List[str]:
        """Prefix a command with the configured sudo command unless running as root."""
        if not self.config.sudo_command or os.geteuid() == 0:
            return list(command)
        return [self.config.sudo_command] + list(command)

    def _confirm_flags(self) -> List[str]:
        return ["--noconfirm"] if self.config.no_confirm else []


class HttpPackageBackend(PackageBackend):
    """
    Base class for backends that query an HTTP endpoint.

    Requests go through a session with urllib3 retries for throttling and
    server errors, and a tenacity retry for connection errors and timeouts.
    """

    def __init__(
        self,
        base_url: str,
        config: Optional[BoxConfig] = None,
        dependency_checker: Optional[SystemDependencyChecker] = None,
        headers: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the HTTP backend.

        Args:
            base_url: Base URL for the repository.
            config: Runtime configuration.
            dependency_checker: Runner for external commands.
            headers: Optional headers to include in all requests.
        """
        super().__init__(config, dependency_checker)
        self.base_url = base_url.rstrip('/')
        self.headers = headers or {}
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with retry logic.

        Returns:
            A configured requests session.
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.retry_count,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"],
            raise_on_status=False
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _get_url(self, path: str) -> str:
        """
        Get the full URL for a path.

        Args:
            path: Path to append to the base URL.

        Returns:
            Full URL.
        """
        path = path.lstrip('/')
        return f"{self.base_url}/{path}"

    def _fetch_url(self, url: str, params: Optional[Any] = None) -> requests.Response:
        """
        Fetch a URL, retrying connection errors and timeouts.

        Args:
            url: URL to fetch.
            params: Query parameters, as a mapping or a list of pairs.

        Returns:
            Response object.

        Raises:
            requests.exceptions.RequestException: If the request fails after retries.
        """
        retrying = Retrying(
            retry=retry_if_exception_type((
                requests.exceptions.ConnectionError,
                requests.exceptions.Timeout
            )),
            stop=stop_after_attempt(self.config.retry_count + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True,
        )

        for attempt in retrying:
            with attempt:
                response = self.session.get(
                    url,
                    params=params,
                    headers=self.headers,
                    timeout=self.config.request_timeout
                )
                response.raise_for_status()
        return response

    def _fetch_json(self, path: str, params: Optional[Any] = None) -> Dict[str, Any]:
        """
        Fetch JSON data from a path below the base URL.

        Args:
            path: Path to append to the base URL.
            params: Query parameters.

        Returns:
            Parsed JSON data.

        Raises:
            FetchError: If the request fails or the body is not a JSON object.
        """
        url = self._get_url(path)

        try:
            response = self._fetch_url(url, params=params)
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Request to {url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            logger.debug(f"Response content (first 500 chars): {response.text[:500]}")
            raise FetchError(f"Failed to parse JSON from {url}: {e}") from e

        if not isinstance(data, dict):
            raise FetchError(f"Unexpected JSON payload from {url}: {type(data).__name__}")

        return data
