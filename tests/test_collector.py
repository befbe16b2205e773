import os
import re
from pathlib import Path

import pytest

from tankobon.collector import DirectoryCollector, collect_all_files, list_entries
from tankobon.types_ import CollectionDepth, FindingKind, Severity, VolumeGroupingStrategy


def names(paths):
    return [p.name for p in paths]


def test_list_entries_filters_hidden_dirs_and_unsupported(tmp_path: Path, image):
    image(tmp_path / "001.jpg")
    image(tmp_path / ".002.jpg")
    (tmp_path / "notes.txt").write_text("x")
    (tmp_path / "sub").mkdir()
    (tmp_path / ".git").mkdir()

    assert names(list_entries(tmp_path, only_dirs=False)) == ["001.jpg"]
    assert names(list_entries(tmp_path, only_dirs=True)) == ["sub"]
    assert sorted(names(collect_all_files(tmp_path))) == ["001.jpg", "notes.txt"]


def test_collect_chapters_sorted_numerically(series):
    root = series([("Chapter 10", 1), ("Chapter 2", 1), ("Chapter 1", 1)])
    chapters = DirectoryCollector(root).collect_chapters()
    assert names(chapters) == ["Chapter 1", "Chapter 2", "Chapter 10"]


def test_collect_chapters_shallow_returns_base(series):
    root = series([("Chapter 1", 1)])
    assert DirectoryCollector(root, depth=CollectionDepth.SHALLOW).collect_chapters() == [root]


def test_custom_sorter_replaces_numeric_order(series):
    root = series([("a", 1), ("c", 1), ("b", 1)])

    def reverse_alpha(x: Path, y: Path) -> int:
        return (x.name < y.name) - (x.name > y.name)

    chapters = DirectoryCollector(root, chapter_sorter=reverse_alpha).collect_chapters()
    assert names(chapters) == ["c", "b", "a"]


def test_collect_pages_keeps_chapter_order_and_sorts_pages(tmp_path: Path, image):
    root = tmp_path / "src"
    for ch in range(1, 6):
        for pg in (10, 2, 1):
            image(root / f"ch{ch}" / f"p{pg}.png")
    collector = DirectoryCollector(root, max_workers=2)
    chapters = collector.collect_pages(collector.collect_chapters())
    assert [c[0].parent.name for c in chapters] == ["ch1", "ch2", "ch3", "ch4", "ch5"]
    assert all(names(c) == ["p1.png", "p2.png", "p10.png"] for c in chapters)


def test_page_pattern_capture_group(tmp_path: Path, image):
    root = tmp_path / "src"
    image(root / "c1" / "Book2_PAGE_010.webp")
    image(root / "c1" / "Book2_PAGE_002.webp")
    collector = DirectoryCollector(root, page_pattern=re.compile(r"PAGE_(\d+)"))
    [pages] = collector.collect_pages(collector.collect_chapters())
    assert names(pages) == ["Book2_PAGE_002.webp", "Book2_PAGE_010.webp"]


def test_collect_pages_fails_fast_on_unreadable_dir(tmp_path: Path, image):
    root = tmp_path / "src"
    image(root / "c1" / "001.jpg")
    collector = DirectoryCollector(root)
    with pytest.raises(OSError):
        collector.collect_pages([root / "c1", root / "missing"])


def test_analysis_recommends_name_strategy(series):
    root = series([("01-001", 3), ("01-002", 3), ("02-003", 3)])
    collected = DirectoryCollector(root).analyze_source_content()
    assert len(collected.chapters) == 3
    assert collected.report.recommended_strategy == VolumeGroupingStrategy.NAME
    [finding] = collected.report.of_kind(FindingKind.CONSISTENT_NAMING)
    assert finding.severity == Severity.POSITIVE


def test_analysis_recommends_image_analysis_and_reports_problems(series):
    root = series([("Chapter 1", 10), ("Chapter 2", 10), ("Chapter 3", 2), ("Extras", 10)])
    (root / "Chapter 1" / "readme.txt").write_text("hi")
    collected = DirectoryCollector(root).analyze_source_content()
    report = collected.report

    assert report.recommended_strategy == VolumeGroupingStrategy.IMAGE_ANALYSIS
    [ignored] = report.of_kind(FindingKind.UNSUPPORTED_FILE_IGNORED)
    assert ignored.path.name == "readme.txt"
    [short] = report.of_kind(FindingKind.INCONSISTENT_PAGE_COUNT)
    assert short.path.name == "Chapter 3"
    assert short.detail("found") == 2
    assert short.detail("expected") == 8
    [unnumbered] = report.of_kind(FindingKind.MISSING_NUMERIC_IDENTIFIER)
    assert unnumbered.path.name == "Extras"


def test_analysis_unusual_file_size(tmp_path: Path, image):
    root = tmp_path / "src"
    for i in range(1, 21):
        image(root / "c1" / f"{i:03d}.png", size=(20, 20))
    big = root / "c1" / "021.png"
    big.write_bytes(os.urandom(50 * 1024))
    report = DirectoryCollector(root).analyze_source_content().report
    flagged = report.of_kind(FindingKind.UNUSUAL_FILE_SIZE)
    assert [f.path.name for f in flagged] == ["021.png"]


def test_analysis_special_characters(tmp_path: Path, image):
    root = tmp_path / "src"
    image(root / "Why?" / "001.jpg")
    report = DirectoryCollector(root).analyze_source_content().report
    assert report.has(FindingKind.SPECIAL_CHARACTERS_IN_PATH)


def test_analysis_no_chapters_and_no_pages(tmp_path: Path):
    empty = tmp_path / "empty"
    empty.mkdir()
    report = DirectoryCollector(empty).analyze_source_content().report
    assert report.has(FindingKind.NO_CHAPTERS_FOUND)
    assert report.recommended_strategy is None

    (empty / "c1").mkdir()
    (empty / "c1" / "notes.txt").write_text("x")
    collected = DirectoryCollector(empty).analyze_source_content()
    assert collected.report.has(FindingKind.NO_PAGES_FOUND)
    assert collected.chapters == [[]]
