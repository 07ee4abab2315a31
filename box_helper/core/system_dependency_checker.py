"""
System dependency checker for box-helper.

This module provides functionality to check for the system commands box
drives (pacman, git, makepkg, fzf, sudo) and to run them with consistent
logging and error handling.
"""

import logging
import os
import shutil
import subprocess
import sys
from typing import Dict, List, Mapping, Optional, Set

from box_helper.core.exceptions import CommandError
from box_helper.core.interfaces import CommandResult


logger = logging.getLogger(__name__)


class SystemDependencyChecker:
    """
    Checker and runner for system commands.

    This class validates required system commands, provides installation
    instructions, and executes commands one at a time.
    """

    # Installation instructions for the commands box relies on
    INSTALLATION_INSTRUCTIONS = {
        "pacman": {
            "linux": "pacman is typically pre-installed on Arch Linux systems",
            "default": "pacman is only available on Arch Linux systems"
        },
        "makepkg": {
            "linux": "makepkg ships with pacman. Install build tools with: sudo pacman -S --needed base-devel",
            "default": "makepkg is only available on Arch Linux systems"
        },
        "git": {
            "linux": "Install git with: sudo pacman -S git",
            "default": "Install Git from https://git-scm.com/"
        },
        "fzf": {
            "linux": "Install fzf with: sudo pacman -S fzf",
            "default": "Install fzf from https://github.com/junegunn/fzf"
        },
        "sudo": {
            "linux": "Install sudo with: pacman -S sudo (as root)",
            "default": "Install sudo from your system's package manager"
        }
    }

    def __init__(self):
        """Initialize the system dependency checker."""
        self._checked_commands: Dict[str, bool] = {}
        self._logged_dependencies: Set[str] = set()
        self._platform = sys.platform

    def check_command_availability(self, command: str) -> bool:
        """
        Check if a system command is available.

        Args:
            command: Name of the command to check.

        Returns:
            True if the command is available, False otherwise.
        """
        if command in self._checked_commands:
            return self._checked_commands[command]

        available = shutil.which(command) is not None
        self._checked_commands[command] = available

        logger.debug(f"Command '{command}' availability: {available}")
        return available

    def get_installation_instructions(self, command: str) -> str:
        """
        Get installation instructions for a command.

        Args:
            command: Name of the command to get instructions for.

        Returns:
            Installation instructions for the command.
        """
        if command not in self.INSTALLATION_INSTRUCTIONS:
            return f"Installation instructions for '{command}' are not available. Please consult the official documentation."

        instructions = self.INSTALLATION_INSTRUCTIONS[command]

        if self._platform in instructions:
            return instructions[self._platform]
        return instructions.get("default", f"Please install '{command}' according to your system's package manager.")

    def log_missing_dependency(self, command: str, provider: str) -> None:
        """
        Log a missing dependency once per command and provider.

        Args:
            command: Name of the missing command.
            provider: Name of the component that requires the command.
        """
        log_key = f"{command}:{provider}"
        if log_key in self._logged_dependencies:
            return

        self._logged_dependencies.add(log_key)

        logger.warning(
            f"Missing system dependency for {provider}: '{command}' command not found. "
            f"{self.get_installation_instructions(command)}"
        )

    def execute_command(
        self,
        command: List[str],
        provider: str,
        capture_output: bool = True,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None
    ) -> CommandResult:
        """
        Execute a system command and wait for it to finish.

        Commands that change the system run with ``capture_output=False`` so
        that they share the terminal and can prompt the user.

        Args:
            command: Command and arguments as a list.
            provider: Name of the component executing the command.
            capture_output: Whether to capture stdout and stderr.
            cwd: Working directory for the command.
            input_text: Text to feed to the command's standard input.
            env: Variables to set on top of the current environment.

        Returns:
            CommandResult describing the exit status and captured output.

        Raises:
            CommandError: If the command is missing or cannot be started.
        """
        if not command:
            raise CommandError(f"Empty command provided by {provider}")

        command_name = command[0]
        if not self.check_command_availability(command_name):
            self.log_missing_dependency(command_name, provider)
            raise CommandError(f"'{command_name}' command not found")

        logger.debug(f"Executing command for {provider}: {' '.join(command)}")

        run_env = None
        if env:
            run_env = dict(os.environ)
            run_env.update(env)

        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                input=input_text,
                env=run_env,
                stdout=subprocess.PIPE if capture_output or input_text is not None else None,
                stderr=subprocess.PIPE if capture_output else None,
                text=True,
                check=False
            )
        except OSError as e:
            raise CommandError(f"Failed to execute '{' '.join(command)}': {e}") from e

        result = CommandResult(
            command=list(command),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or ""
        )

        if not result.success:
            logger.debug(
                f"Command '{' '.join(command)}' for {provider} returned "
                f"exit code {result.returncode}. stderr: {result.stderr.strip()}"
            )

        return result

