"""
Scoped extraction workspace.

An ExtractionWorkspace owns one temporary directory for the lifetime of a
``with`` block and removes it on every exit path. Callers create it and
pass it down; the reconciliation core never creates or removes temporary
storage itself.

Example usage:
    from core.workspace import ExtractionWorkspace

    with ExtractionWorkspace() as workspace:
        target = workspace.new_directory("archive")
        ...
    # directory removed here, even if the block raised
"""

import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from core.errors import ConfigurationError
from core.logging import get_logger

logger = get_logger(__name__)


class ExtractionWorkspace:
    """Temporary directory handle with guaranteed release."""

    def __init__(self, parent_dir: Optional[Union[str, Path]] = None, prefix: str = "hashcertify_"):
        self.parent_dir = Path(parent_dir) if parent_dir else None
        self.prefix = prefix
        self._path: Optional[Path] = None
        self._counter = 0

    @property
    def path(self) -> Path:
        """Root of the workspace; only valid inside the ``with`` block."""
        if self._path is None:
            raise RuntimeError("ExtractionWorkspace is not open")
        return self._path

    @property
    def is_open(self) -> bool:
        return self._path is not None

    def open(self) -> "ExtractionWorkspace":
        """
        Create the backing directory.

        Raises:
            ConfigurationError: If the parent directory is unusable
        """
        if self._path is not None:
            return self
        if self.parent_dir is not None and not self.parent_dir.is_dir():
            raise ConfigurationError(f"Workspace parent directory does not exist: {self.parent_dir}")
        try:
            self._path = Path(tempfile.mkdtemp(
                prefix=self.prefix,
                dir=str(self.parent_dir) if self.parent_dir else None
            ))
        except OSError as e:
            raise ConfigurationError(f"Cannot create workspace: {e}") from e
        logger.debug(f"Opened extraction workspace: {self._path}")
        return self

    def new_directory(self, name: str) -> Path:
        """Create a fresh, uniquely numbered subdirectory inside the workspace."""
        self._counter += 1
        directory = self.path / f"{self._counter:03d}_{name}"
        directory.mkdir(parents=True)
        return directory

    def cleanup(self) -> None:
        """Remove the backing directory; failures are logged, not raised."""
        if self._path is None:
            return
        path, self._path = self._path, None
        try:
            shutil.rmtree(path)
            logger.debug(f"Cleaned up extraction workspace: {path}")
        except OSError as e:
            logger.warning(f"Failed to cleanup extraction workspace {path}: {e}")

    def __enter__(self) -> "ExtractionWorkspace":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()
