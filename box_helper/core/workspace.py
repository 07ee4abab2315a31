"""
Scratch workspace for community package builds.

The workspace is the only on-disk state box owns. It is created when the
command line starts and removed on every exit path.
"""

import atexit
import logging
import os
import shutil
import signal
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional


logger = logging.getLogger(__name__)


class ScratchWorkspace:
    """
    Process-scoped build directory.

    Use it as a context manager; ``release`` also runs from an ``atexit`` hook
    and on SIGTERM so the directory never outlives the process.
    """

    def __init__(self, path: Optional[str] = None, prefix: str = "box_aur-"):
        self._requested_path = path
        self._prefix = prefix
        self.path: Optional[Path] = None
        self._previous_sigterm = None

    @property
    def active(self) -> bool:
        return self.path is not None

    def acquire(self) -> Path:
        """
        Create the workspace directory.

        Returns:
            Path of the workspace.
        """
        if self.path is not None:
            return self.path

        if self._requested_path:
            path = Path(self._requested_path).expanduser()
            path.mkdir(parents=True, exist_ok=True)
        else:
            path = Path(tempfile.mkdtemp(prefix=self._prefix))

        self.path = path
        atexit.register(self.release)
        self._install_signal_handler()

        logger.debug(f"Acquired scratch workspace at {path}")
        return path

    def release(self) -> None:
        """Remove the workspace directory. Safe to call more than once."""
        if self.path is None:
            return

        path, self.path = self.path, None
        shutil.rmtree(path, ignore_errors=True)
        atexit.unregister(self.release)
        self._restore_signal_handler()

        logger.debug(f"Released scratch workspace at {path}")

    @contextmanager
    def package_dir(self, name: str) -> Iterator[Path]:
        """
        Provide a fresh directory for one package build.

        The directory is removed when the block exits, whether the build
        succeeded or not.

        Args:
            name: Package name, used as the directory name.

        Yields:
            Path the build recipe should be cloned into. It does not exist yet.
        """
        root = self.acquire()
        build_dir = root / name
        if build_dir.exists():
            shutil.rmtree(build_dir)

        try:
            yield build_dir
        finally:
            shutil.rmtree(build_dir, ignore_errors=True)

    def _install_signal_handler(self) -> None:
        # Signal handlers can only be installed from the main thread
        try:
            self._previous_sigterm = signal.signal(signal.SIGTERM, self._handle_sigterm)
        except ValueError:
            self._previous_sigterm = None

    def _restore_signal_handler(self) -> None:
        if self._previous_sigterm is None:
            return
        try:
            signal.signal(signal.SIGTERM, self._previous_sigterm)
        except ValueError:
            logger.debug("Not on the main thread, leaving SIGTERM handler in place")
        self._previous_sigterm = None

    def _handle_sigterm(self, signum, frame):
        logger.debug(f"Received signal {signum}, cleaning up workspace")
        self.release()
        raise SystemExit(128 + signum)

    def __enter__(self) -> "ScratchWorkspace":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"ScratchWorkspace(path={os.fspath(self.path) if self.path else None!r})"
