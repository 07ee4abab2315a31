"""
Configuration management for box-helper.

This module provides the ConfigurationManager class for loading the optional
YAML configuration file and merging it with command line flags into a single
BoxConfig value.
"""

import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from box_helper.core.exceptions import ConfigurationError
from box_helper.core.interfaces import BoxConfig


logger = logging.getLogger(__name__)


DEFAULT_CONFIG_PATH = "~/.config/box/config.yaml"


class ConfigurationManager:
    """
    Loads and merges configuration for box-helper.

    This class handles:
    - Locating the configuration file (explicit path or the default location)
    - Parsing and validating its contents
    - Applying command line overrides on top of the file values
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to a YAML configuration file. If None, the default
                location is used when it exists.

        Raises:
            ConfigurationError: If an explicitly given file does not exist.
        """
        if config_path is None:
            default_path = Path(DEFAULT_CONFIG_PATH).expanduser()
            self.config_path = default_path if default_path.exists() else None
        else:
            self.config_path = Path(config_path).expanduser().resolve()
            if not self.config_path.exists():
                raise ConfigurationError(f"Configuration file does not exist: {self.config_path}")

        self._file_cache: Optional[Dict[str, Any]] = None

        logger.debug(f"ConfigurationManager initialized with config_path: {self.config_path}")

    def load_file(self) -> Dict[str, Any]:
        """
        Load and validate the configuration file.

        Returns:
            Dictionary of validated settings, empty when no file is used.

        Raises:
            ConfigurationError: If the file cannot be read or is invalid.
        """
        if self._file_cache is not None:
            return self._file_cache

        if self.config_path is None:
            self._file_cache = {}
            return self._file_cache

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                raw_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing configuration YAML: {e}")
        except IOError as e:
            raise ConfigurationError(f"Error reading configuration file: {e}")

        if not isinstance(raw_data, dict):
            raise ConfigurationError(
                f"Configuration file must contain a mapping, got {type(raw_data).__name__}"
            )

        self._file_cache = self.validate(raw_data)
        logger.debug(f"Loaded {len(self._file_cache)} settings from {self.config_path}")
        return self._file_cache

    @staticmethod
    def validate(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate raw settings against the BoxConfig fields.

        Args:
            data: Raw settings, typically parsed from YAML.

        Returns:
            The settings with normalized values.

        Raises:
            ConfigurationError: On unknown keys or values of the wrong type.
        """
        defaults = BoxConfig()
        known = {f.name for f in fields(BoxConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        validated = {}
        for key, value in data.items():
            if key == "workspace_dir":
                if value is not None and not isinstance(value, str):
                    raise ConfigurationError("workspace_dir must be a string path")
                validated[key] = os.path.expanduser(value) if value else None
            elif key == "fzf_options":
                if isinstance(value, str):
                    value = value.split()
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise ConfigurationError("fzf_options must be a string or a list of strings")
                validated[key] = value
            else:
                expected = type(getattr(defaults, key))
                # bool is a subclass of int, so reject it explicitly for numeric keys
                if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
                    raise ConfigurationError(
                        f"{key} must be of type {expected.__name__}, got {type(value).__name__}"
                    )
                if expected is int and value < 0:
                    raise ConfigurationError(f"{key} must not be negative")
                validated[key] = value.rstrip('/') if key == "aur_url" else value

        return validated

    def build_config(
        self,
        official_only: bool = False,
        no_fzf: bool = False,
        no_confirm: bool = False
    ) -> BoxConfig:
        """
        Build the effective configuration.

        Command line flags can only switch toggles on; a flag left unset keeps
        the value from the configuration file.

        Args:
            official_only: Suppress all community repository access.
            no_fzf: Force the numbered selection prompt.
            no_confirm: Pass --noconfirm to pacman and makepkg.

        Returns:
            The merged BoxConfig.
        """
        config = BoxConfig(**self.load_file())

        if official_only:
            config.official_only = True
        if no_fzf:
            config.use_fzf = False
        if no_confirm:
            config.no_confirm = True

        logger.debug(f"Effective configuration: {config}")
        return config
