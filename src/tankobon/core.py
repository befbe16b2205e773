"""Core utilities: page classification, number extraction and name comparators."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Tuple, Union

from .errors import UnsupportedFormatError

DEFAULT_NUMBER_PATTERN = r"\d+\.?\d*"
DEFAULT_VOLUME_CHAPTER_PATTERN = r"\d+-\d+(\.\d+)?"

SUPPORTED_IMAGES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
}

PathLike = Union[str, Path]


def is_hidden(path: PathLike) -> bool:
    """Return True when the final path component starts with a dot.

    >>> is_hidden('chapter/.DS_Store')
    True
    >>> is_hidden('chapter/001.jpg')
    False
    """
    return Path(path).name.startswith(".")


def get_file_info(path: PathLike) -> Tuple[str, str]:
    """Return `(extension, mime_type)` for a supported page image.

    The extension is lower-cased and `jpeg` is normalized to `jpg`.

    >>> get_file_info('p/001.JPEG')
    ('jpg', 'image/jpeg')
    >>> get_file_info('p/002.webp')
    ('webp', 'image/webp')

    Raises UnsupportedFormatError for anything else.
    """
    ext = Path(path).suffix.lstrip(".").lower()
    mime = SUPPORTED_IMAGES.get(ext)
    if mime is None:
        raise UnsupportedFormatError(f"Unsupported image format: {path}")
    return ("jpg" if ext == "jpeg" else ext), mime


def is_supported_image(path: PathLike) -> bool:
    """
    >>> is_supported_image('a/001.PNG'), is_supported_image('a/notes.txt')
    (True, False)
    """
    return Path(path).suffix.lstrip(".").lower() in SUPPORTED_IMAGES


def _parse_stripped(text: str) -> Optional[float]:
    stripped = text.lstrip("0")
    if not stripped:
        return None
    try:
        return float(stripped)
    except ValueError:
        return None


def extract_number(name: str, pattern: Optional[re.Pattern] = None) -> Optional[float]:
    """Extract the sort number from a file or directory name.

    The last match of `pattern` wins; its first capture group is used when
    the pattern has one, otherwise the whole match. A capture containing a
    dot is parsed as-is, otherwise leading zeros are stripped first, so an
    all-zero capture yields None.

    Examples:
    >>> extract_number('001-test.jpg')
    1.0
    >>> extract_number('042.')
    42.0
    >>> extract_number('MyBook_PAGE_007.webp', re.compile(r'PAGE_(\\d+)'))
    7.0
    >>> extract_number('000') is None
    True
    >>> extract_number('no_number.txt') is None
    True
    """
    if pattern is None:
        pattern = re.compile(DEFAULT_NUMBER_PATTERN)
    last = None
    for last in pattern.finditer(name):
        pass
    if last is None:
        return None
    capture = last.group(1) if pattern.groups and last.group(1) is not None else last.group(0)
    if "." in capture:
        try:
            return float(capture)
        except ValueError:
            return None
    return _parse_stripped(capture)


def _cmp_optional(a: Optional[float], b: Optional[float]) -> int:
    # a missing number sorts before any present one
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1
    return (a > b) - (a < b)


def compare_by_number(a: PathLike, b: PathLike, pattern: Optional[re.Pattern] = None) -> int:
    """Compare two paths by the number extracted from their names.

    Equal or missing numbers compare equal, which keeps a stable sort in
    enumeration order.

    >>> compare_by_number('ch10', 'ch2'), compare_by_number('x', 'y')
    (1, 0)
    """
    return _cmp_optional(
        extract_number(Path(a).name, pattern), extract_number(Path(b).name, pattern)
    )


def parse_volume_chapter(
    name: str, pattern: Optional[re.Pattern] = None
) -> Tuple[Optional[float], Optional[float]]:
    """Parse `volume-chapter[.fraction]` out of a chapter directory name.

    >>> parse_volume_chapter('Berserk 02-013.5')
    (2.0, 13.5)
    >>> parse_volume_chapter('00-007')
    (None, 7.0)
    >>> parse_volume_chapter('Chapter 7')
    (None, None)
    """
    if pattern is None:
        pattern = re.compile(DEFAULT_VOLUME_CHAPTER_PATTERN)
    m = pattern.search(name)
    if m is None:
        return None, None
    volume_part, _, chapter_part = m.group(0).partition("-")
    volume = _parse_stripped(volume_part)

    main_part, _, fraction = chapter_part.partition(".")
    chapter = _parse_stripped(main_part)
    if chapter is not None and fraction.isdigit():
        chapter += int(fraction) / 10 ** len(fraction)
    return volume, chapter


def volume_number(name: str, pattern: Optional[re.Pattern] = None) -> float:
    """Volume number of a chapter name, 0.0 when absent or unparseable.

    >>> volume_number('03-021'), volume_number('extra')
    (3.0, 0.0)
    """
    volume, _ = parse_volume_chapter(name, pattern)
    return volume if volume is not None else 0.0


def compare_volume_chapter(a: PathLike, b: PathLike, pattern: Optional[re.Pattern] = None) -> int:
    """Order chapter directories by volume, then chapter.

    A name whose volume cannot be parsed compares equal on the volume key,
    so only the chapter numbers decide.

    >>> compare_volume_chapter('01-010', '02-001'), compare_volume_chapter('00-003', '01-002')
    (-1, 1)
    """
    vol_a, chap_a = parse_volume_chapter(Path(a).name, pattern)
    vol_b, chap_b = parse_volume_chapter(Path(b).name, pattern)
    if vol_a is not None and vol_b is not None and vol_a != vol_b:
        return -1 if vol_a < vol_b else 1
    return _cmp_optional(chap_a, chap_b)
