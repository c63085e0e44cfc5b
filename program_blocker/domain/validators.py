"""Domain validation logic for executables and rule groups."""

import re
from functools import lru_cache
from pathlib import PurePath
from typing import Final, Iterable, Protocol


class Validator(Protocol):
    """Protocol for validators."""

    def is_valid(self, value: str) -> bool:
        """Check if value is valid."""
        ...


@lru_cache(maxsize=128)
def normalize_extension(extension: str) -> str:
    """
    Normalize a file extension for comparison.

    Args:
        extension: Extension with or without leading dot, any case

    Returns:
        Lower-cased extension with a single leading dot

    Raises:
        ValueError: If the extension is empty or contains path separators
    """
    value = extension.strip().lower()
    if value.startswith("."):
        value = value[1:]

    if not value or any(sep in value for sep in ("/", "\\", ".")):
        raise ValueError(f"Invalid executable extension: {extension!r}")

    return f".{value}"


class ExecutableValidator:
    """
    Decides whether a file name denotes an executable.

    Matching is done on the file extension, case-insensitively.
    """

    DEFAULT_EXTENSIONS: Final[tuple[str, ...]] = (".exe",)

    def __init__(self, extensions: Iterable[str] = DEFAULT_EXTENSIONS):
        """
        Initialize validator.

        Args:
            extensions: Extensions treated as executable (default: .exe)

        Raises:
            ValueError: If no extensions are given or one is malformed
        """
        normalized = frozenset(normalize_extension(ext) for ext in extensions)
        if not normalized:
            raise ValueError("At least one executable extension is required")
        self._extensions = normalized

    @property
    def extensions(self) -> frozenset[str]:
        """Normalized extensions this validator accepts."""
        return self._extensions

    def is_valid(self, value: str) -> bool:
        """
        Check if a path or file name has an executable extension.

        Args:
            value: Path or file name

        Returns:
            True if the extension matches
        """
        if not value:
            return False
        return PurePath(value).suffix.lower() in self._extensions


class OwnerGroupValidator:
    """
    Validates the group tag that marks rules owned by this tool.

    Wildcard characters are rejected: the rule store treats them as
    patterns, which would widen purge to groups the tool does not own.
    """

    MAX_LENGTH: Final[int] = 255

    _FORBIDDEN: Final[re.Pattern] = re.compile(r"[*?\[\]'\r\n]")

    @classmethod
    def is_valid(cls, group: str) -> bool:
        """
        Validate a group tag.

        Args:
            group: Group tag to validate

        Returns:
            True if the tag is non-empty, bounded and free of wildcards
        """
        if not isinstance(group, str) or not group.strip():
            return False

        if len(group) > cls.MAX_LENGTH:
            return False

        return cls._FORBIDDEN.search(group) is None
