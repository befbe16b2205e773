import functools
import re
from pathlib import Path

import pytest

from tankobon.core import (
    compare_by_number,
    compare_volume_chapter,
    extract_number,
    get_file_info,
    is_hidden,
    is_supported_image,
    parse_volume_chapter,
    volume_number,
)
from tankobon.errors import InvalidPathError, UnsupportedFormatError
from tankobon.utils import sanitize_filename, validate_path


@pytest.mark.parametrize(
    "name,expected",
    [
        ("001-test.jpg", 1.0),
        ("042.", 42.0),
        ("chapter 10", 10.0),
        ("ch_2.5_final", 2.5),
        ("000", None),
        ("no_number.txt", None),
        ("page 3 of 12", 12.0),
    ],
)
def test_extract_number_default_pattern(name, expected):
    assert extract_number(name) == expected


def test_extract_number_uses_capture_group():
    pat = re.compile(r"PAGE_(\d+)")
    assert extract_number("MyBook_PAGE_007.webp", pat) == 7.0
    assert extract_number("MyBook_007.webp", pat) is None


def test_extract_number_unparseable_capture_is_none():
    assert extract_number("vol-abc", re.compile(r"vol-(\w+)")) is None


def test_numeric_sort_is_not_lexicographic():
    names = [Path("Chapter 10"), Path("Chapter 2"), Path("Chapter 1")]
    ordered = sorted(names, key=functools.cmp_to_key(compare_by_number))
    assert [p.name for p in ordered] == ["Chapter 1", "Chapter 2", "Chapter 10"]


def test_numeric_sort_is_stable_for_equal_and_missing_numbers():
    names = [Path("b-5"), Path("extra"), Path("a-5"), Path("notes")]
    ordered = sorted(names, key=functools.cmp_to_key(compare_by_number))
    # missing numbers first, in input order; equal numbers keep input order
    assert [p.name for p in ordered] == ["extra", "notes", "b-5", "a-5"]


def test_hidden_and_supported():
    assert is_hidden(Path("x/.hidden.jpg"))
    assert not is_hidden(Path(".config/visible.jpg"))
    for name in ("a.jpg", "a.JPG", "a.jpeg", "a.png", "a.WebP"):
        assert is_supported_image(name)
    for name in ("a.gif", "a.txt", "noext"):
        assert not is_supported_image(name)


def test_get_file_info():
    assert get_file_info("x.PNG") == ("png", "image/png")
    assert get_file_info("x.jpeg") == ("jpg", "image/jpeg")
    with pytest.raises(UnsupportedFormatError):
        get_file_info("x.bmp")


def test_parse_volume_chapter():
    assert parse_volume_chapter("01-001") == (1.0, 1.0)
    assert parse_volume_chapter("Title 03-012.25") == (3.0, 12.25)
    assert parse_volume_chapter("000-000") == (None, None)
    assert volume_number("Chapter 5") == 0.0


def test_volume_chapter_order():
    names = ["02-001", "01-010", "01-002", "01-002.5"]
    ordered = sorted(names, key=functools.cmp_to_key(compare_volume_chapter))
    assert ordered == ["01-002", "01-002.5", "01-010", "02-001"]


def test_sanitize_filename():
    assert sanitize_filename('a<b>c:d"e/f\\g|h?i*j') == "a-b-c-d-e-f-g-h-i-j"
    assert sanitize_filename("bell\x07") == "bell_"
    assert sanitize_filename("Plain Title") == "Plain Title"


def test_validate_path():
    validate_path("/tmp/ok/001.jpg")
    with pytest.raises(InvalidPathError) as exc:
        validate_path("/tmp/what?/001.jpg")
    assert "?" in exc.value.reason
