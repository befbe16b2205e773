from pathlib import Path

import pytest
from PIL import Image

from tankobon.cover import determine_volume_start_chapters, is_grayscale, is_grayscale_file
from tankobon.testing import GRAY, RED, make_image


def test_pure_gray_is_grayscale():
    assert is_grayscale(Image.new("RGB", (100, 100), GRAY), 0.9)


def test_pure_color_is_not_grayscale():
    assert not is_grayscale(Image.new("RGB", (100, 100), RED), 0.1)


def test_channel_tolerance():
    near_gray = Image.new("RGB", (50, 50), (120, 130, 125))
    tinted = Image.new("RGB", (50, 50), (120, 135, 125))
    assert is_grayscale(near_gray, 0.5)
    assert not is_grayscale(tinted, 0.5)


def test_mostly_gray_page_with_color_band():
    img = Image.new("RGB", (100, 100), GRAY)
    img.paste(RED, (0, 0, 100, 20))
    # 80% gray
    assert is_grayscale(img, 0.75)
    assert not is_grayscale(img, 0.85)


def test_large_image_is_thumbnailed_without_mutating_input():
    img = Image.new("RGB", (1200, 800), GRAY)
    assert is_grayscale(img, 0.5)
    assert img.size == (1200, 800)


def test_sensitivity_is_clamped():
    img = Image.new("RGB", (30, 30), GRAY)
    assert not is_grayscale(img, 1.5)
    assert is_grayscale(img, -1.0)


def test_grayscale_mode_images_are_converted():
    assert is_grayscale(Image.new("L", (40, 40), 90), 0.9)


def test_is_grayscale_file_rejects_garbage(tmp_path: Path):
    bad = tmp_path / "001.jpg"
    bad.write_bytes(b"definitely not a jpeg")
    with pytest.raises(OSError):
        is_grayscale_file(bad, 0.75)


def test_volume_starts_from_color_covers(tmp_path: Path):
    chapters = []
    for i, color in enumerate([RED, GRAY, GRAY, RED, GRAY]):
        cover = make_image(tmp_path / f"c{i}" / "001.png", color)
        chapters.append([cover, make_image(tmp_path / f"c{i}" / "002.png")])
    assert determine_volume_start_chapters(chapters, 0.75, max_workers=2) == [0, 3]


def test_volume_starts_always_include_zero_and_skip_empty_and_broken(tmp_path: Path):
    broken = tmp_path / "c2" / "001.jpg"
    broken.parent.mkdir()
    broken.write_bytes(b"garbage")
    chapters = [
        [make_image(tmp_path / "c0" / "001.png", GRAY)],
        [],
        [broken],
        [make_image(tmp_path / "c3" / "001.png", RED)],
    ]
    assert determine_volume_start_chapters(chapters, 0.75) == [0, 3]
    assert determine_volume_start_chapters([], 0.75) == [0]


def test_volume_starts_skip_covers_pillow_refuses_to_decode(tmp_path: Path, monkeypatch):
    chapters = [
        [make_image(tmp_path / "c0" / "001.png", GRAY, size=(50, 50))],
        [make_image(tmp_path / "c1" / "001.png", RED, size=(400, 400))],
        [make_image(tmp_path / "c2" / "001.png", RED, size=(50, 50))],
    ]
    # 400x400 exceeds twice the limit, so Pillow raises DecompressionBombError
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10000)
    with pytest.raises(Image.DecompressionBombError):
        is_grayscale_file(chapters[1][0], 0.75)
    assert determine_volume_start_chapters(chapters, 0.75) == [0, 2]
