"""Filesystem infrastructure for discovering executables."""

import logging
import os
from pathlib import Path
from typing import Protocol

from program_blocker.domain.entities import ExecutableTarget
from program_blocker.domain.exceptions import NotExecutableException, PathNotFoundException
from program_blocker.domain.validators import ExecutableValidator, Validator

logger = logging.getLogger(__name__)


class PathResolver(Protocol):
    """Protocol for resolving a path into executable targets."""

    def resolve(self, path: str) -> tuple[ExecutableTarget, ...]:
        """Resolve path into executables."""
        ...


def path_exists(path: str) -> bool:
    """
    Check whether a path exists.

    Access-denied and other OS errors count as "not found".

    Args:
        path: Path to test

    Returns:
        True if the path exists and could be inspected
    """
    if not path:
        return False
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


class FileSystemPathResolver:
    """
    Resolves a file or directory into the executables it contains.

    Directories are scanned recursively in sorted order, so the result
    is deterministic on an unchanged filesystem.
    """

    def __init__(self, validator: Validator | None = None):
        """
        Initialize resolver.

        Args:
            validator: Filter accepting executable file names (default: .exe files)
        """
        self._validator = validator or ExecutableValidator()

    def resolve(self, path: str) -> tuple[ExecutableTarget, ...]:
        """
        Resolve a path into executable targets.

        Args:
            path: File or directory to resolve

        Returns:
            Distinct executable targets; empty if a directory holds none

        Raises:
            PathNotFoundException: If the path does not exist
            NotExecutableException: If a file path is not an executable
        """
        if not path_exists(path):
            raise PathNotFoundException(f"Path not found: {path}", path=path)

        target = Path(os.path.abspath(path))

        if target.is_dir():
            targets = self._scan_directory(target)
            logger.debug("Found %d executables under %s", len(targets), target)
            return targets

        if not self._validator.is_valid(target.name):
            raise NotExecutableException(
                f"Not an executable: {path}",
                path=path,
            )

        return (ExecutableTarget(path=target),)

    def _scan_directory(self, root: Path) -> tuple[ExecutableTarget, ...]:
        """
        Walk a directory tree collecting executables.

        Unreadable subtrees are skipped.

        Args:
            root: Absolute directory path

        Returns:
            Executables in walk order
        """
        found: dict[str, ExecutableTarget] = {}

        def on_error(error: OSError) -> None:
            logger.warning("Skipping unreadable path %s: %s", error.filename, error.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames.sort()
            for filename in sorted(filenames):
                if not self._validator.is_valid(filename):
                    continue
                file_path = Path(dirpath) / filename
                try:
                    if not file_path.is_file():
                        continue
                except OSError as e:
                    logger.warning("Cannot inspect %s: %s", file_path, e)
                    continue
                found.setdefault(str(file_path), ExecutableTarget(path=file_path))

        return tuple(found.values())
