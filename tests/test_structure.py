from pathlib import Path

import pytest

from tankobon.errors import VolumeStructureError
from tankobon.structure import (
    calculate_volume_sizes,
    structure_by_name,
    structure_chapters,
    structure_flat,
    structure_manual,
)
from tankobon.testing import GRAY, RED, make_image
from tankobon.types_ import VolumeGroupingStrategy


def fake_chapters(root: Path, names, pages=2):
    return [[root / name / f"{p:03d}.jpg" for p in range(1, pages + 1)] for name in names]


def all_pages(volumes):
    return [p for v in volumes for c in v for p in c]


@pytest.mark.parametrize(
    "starts,total,expected",
    [
        ([0, 5, 10], 15, [5, 5, 5]),
        ([0, 10], 12, [10, 2]),
        ([0], 20, [20]),
        ([], 15, [15]),
        ([], 0, []),
        ([2, 8], 15, [6, 7]),
        ([0, 0, 4], 4, [4]),
        ([0, 6], 4, [6]),
    ],
)
def test_calculate_volume_sizes(starts, total, expected):
    assert calculate_volume_sizes(starts, total) == expected


def test_flat_makes_one_volume_with_one_chapter(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["1", "2", "3"])
    result = structure_flat(chapters)
    assert len(result.volumes) == 1
    assert len(result.volumes[0]) == 1
    assert result.volumes[0][0] == all_pages([chapters])
    assert result.report.chapter_counts_per_volume == [3]
    assert result.report.total_chapters_processed == 3


def test_manual_partitions_contiguously(tmp_path: Path):
    chapters = fake_chapters(tmp_path, [str(i) for i in range(6)])
    result = structure_manual(chapters, (2, 3, 1))
    assert [len(v) for v in result.volumes] == [2, 3, 1]
    assert all_pages(result.volumes) == all_pages([chapters])
    assert result.report.total_volumes_created == 3


def test_manual_leftover_goes_to_last_volume(tmp_path: Path):
    chapters = fake_chapters(tmp_path, [str(i) for i in range(5)])
    result = structure_manual(chapters, (2,))
    assert result.report.chapter_counts_per_volume == [2, 3]


def test_manual_overrun_is_an_error(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["a", "b"])
    with pytest.raises(VolumeStructureError, match=r"Manual volume sizes \(2, 1\) exceed available chapters \(2\)"):
        structure_manual(chapters, (2, 1))


def test_manual_without_sizes(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["a", "b"])
    result = structure_manual(chapters)
    assert result.report.chapter_counts_per_volume == [2]
    assert all_pages(result.volumes) == all_pages([chapters])
    assert structure_manual([]).volumes == []


def test_name_strategy_groups_by_volume_prefix(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["02-003", "01-001", "01-002", "02-004", "03-005"])
    result = structure_by_name(chapters)
    assert result.report.chapter_counts_per_volume == [2, 2, 1]
    first_names = [v[0][0].parent.name for v in result.volumes]
    assert first_names == ["01-001", "02-003", "03-005"]


def test_name_strategy_zero_volume_never_opens_a_volume(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["00-001", "00-002", "01-003"])
    result = structure_by_name(chapters)
    assert result.report.chapter_counts_per_volume == [2, 1]

    unnamed = fake_chapters(tmp_path, ["Chapter 1", "Chapter 2"])
    assert structure_by_name(unnamed).report.chapter_counts_per_volume == [2]


def test_name_strategy_keeps_empty_chapters(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["01-001", "01-002"]) + [[]]
    result = structure_by_name(chapters)
    assert sum(len(v) for v in result.volumes) == 3


def test_image_analysis_strategy(tmp_path: Path):
    chapters = []
    for i, color in enumerate([RED, GRAY, RED, GRAY, GRAY]):
        chapters.append([make_image(tmp_path / f"c{i}" / "001.png", color)])
    result = structure_chapters(chapters, VolumeGroupingStrategy.IMAGE_ANALYSIS, sensitivity=0.75)
    assert result.report.chapter_counts_per_volume == [2, 3]
    assert all_pages(result.volumes) == all_pages([chapters])


def test_dispatch_flat_and_manual(tmp_path: Path):
    chapters = fake_chapters(tmp_path, ["a", "b", "c"])
    assert structure_chapters(chapters, VolumeGroupingStrategy.FLAT).report.total_volumes_created == 1
    manual = structure_chapters(chapters, VolumeGroupingStrategy.MANUAL, volume_sizes=(1, 2))
    assert manual.report.chapter_counts_per_volume == [1, 2]
