"""Exception hierarchy raised by tankobon operations.

Raw filesystem failures are not wrapped: they propagate as the builtin
`OSError` family so callers can inspect `errno` and `filename` directly.
"""
from __future__ import annotations

from pathlib import Path
from typing import Union


class TankobonError(Exception):
    """Base class for every error raised on purpose by this package."""


class ConfigError(TankobonError, ValueError):
    """Invalid configuration: bad regex, out-of-range value, missing field."""


class InvalidPathError(TankobonError):
    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Invalid path {self.path}: {reason}")


class PathTooLongError(InvalidPathError):
    def __init__(self, path: Union[str, Path], length: int, limit: int):
        self.length = length
        self.limit = limit
        super().__init__(path, f"path length {length} exceeds {limit} characters")


class UnsupportedFormatError(TankobonError):
    """A file is not a supported page image, or a required input is missing for a format."""


class NotFoundError(TankobonError):
    """A required file or directory does not exist."""


class AsyncTaskError(TankobonError):
    """A unit of background work crashed with a non-domain exception."""


class ContainerError(TankobonError):
    """The output container could not be assembled or written."""


class VolumeStructureError(TankobonError):
    """Chapters cannot be partitioned into volumes as requested."""
