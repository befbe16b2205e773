"""Path string helpers shared by the collector and the generators."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from .errors import InvalidPathError, PathTooLongError

INVALID_FILENAME_CHARS = '<>:"/\\|?*'
INVALID_PATH_CHARS = '<>"|?*'
WINDOWS_MAX_PATH = 260


def sanitize_filename(name: str) -> str:
    """Make `name` safe to use as a single file or directory name.

    >>> sanitize_filename('Re:Zero / Arc 1?')
    'Re-Zero - Arc 1-'
    >>> sanitize_filename('tab\\there')
    'tab_here'
    """
    out = []
    for ch in name:
        if ch in INVALID_FILENAME_CHARS:
            out.append("-")
        elif ord(ch) < 32 or ord(ch) == 127:
            out.append("_")
        else:
            out.append(ch)
    return "".join(out)


def validate_path(path: Union[str, Path]) -> None:
    """Raise InvalidPathError when `path` contains characters some platforms reject.

    On Windows, paths longer than 260 characters raise PathTooLongError.
    """
    text = str(path)
    bad = sorted({ch for ch in text if ch in INVALID_PATH_CHARS})
    if bad:
        raise InvalidPathError(path, f"contains invalid characters: {''.join(bad)}")
    if os.name == "nt" and len(text) > WINDOWS_MAX_PATH:
        raise PathTooLongError(path, len(text), WINDOWS_MAX_PATH)
