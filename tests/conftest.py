import pytest
from pathlib import Path

from tankobon.testing import make_chapter, make_image, make_series, run_tankobon


@pytest.fixture
def run_cli():
    def _run_cli(args):
        return run_tankobon(args)

    return _run_cli


@pytest.fixture
def image():
    return make_image


@pytest.fixture
def series(tmp_path: Path):
    """Factory building a chapter tree under `tmp_path/src`."""

    def _series(chapters, color_covers=()):
        return make_series(tmp_path / "src", chapters, color_covers)

    return _series


@pytest.fixture
def chapter():
    return make_chapter
