"""Small helpers exported for tests.

These convenience functions build synthetic chapter trees and run the CLI
in a subprocess; they are intended for use by the test suite only.
"""
from pathlib import Path
import os
import subprocess
import sys
from typing import Iterable, Sequence, Tuple

from PIL import Image

GRAY = (128, 128, 128)
RED = (220, 30, 30)


def make_image(path: Path, color: Tuple[int, int, int] = GRAY, size: Tuple[int, int] = (60, 80)) -> Path:
    """Write a solid-color image; the format follows the file extension."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, color).save(path)
    return path


def make_chapter(root: Path, name: str, pages: int, cover_color=GRAY, ext: str = "jpg") -> Path:
    """Create `root/name` holding `pages` images; the first one uses `cover_color`."""
    chapter = root / name
    for i in range(1, pages + 1):
        make_image(chapter / f"{i:03d}.{ext}", cover_color if i == 1 else GRAY)
    return chapter


def make_series(root: Path, chapters: Iterable[Tuple[str, int]], color_covers: Sequence[str] = ()) -> Path:
    """Create one chapter folder per `(name, pages)`; names in `color_covers` get a red first page."""
    root.mkdir(parents=True, exist_ok=True)
    for name, pages in chapters:
        make_chapter(root, name, pages, RED if name in color_covers else GRAY)
    return root


def run_tankobon(args):
    src_dir = str(Path(__file__).resolve().parents[1])
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_dir, env.get("PYTHONPATH")) if p)
    cmd = [sys.executable, "-m", "tankobon"] + [str(a) for a in args]
    return subprocess.run(cmd, capture_output=True, text=True, env=env)
