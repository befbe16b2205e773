"""Partition ordered chapters into volumes according to a grouping strategy."""
from __future__ import annotations

import functools
import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .core import DEFAULT_VOLUME_CHAPTER_PATTERN, compare_volume_chapter, volume_number
from .cover import determine_volume_start_chapters
from .errors import VolumeStructureError
from .types_ import (
    Chapter,
    PathSorter,
    StructuredContent,
    Volume,
    VolumeGroupingStrategy,
    VolumeStructureReport,
)

logger = logging.getLogger(__name__)


def calculate_volume_sizes(starts: Sequence[int], total: int) -> List[int]:
    """Turn volume start indices into chapter counts per volume.

    Examples:
    >>> calculate_volume_sizes([0, 5, 10], 15)
    [5, 5, 5]
    >>> calculate_volume_sizes([0, 10], 12)
    [10, 2]
    >>> calculate_volume_sizes([2, 8], 15)
    [6, 7]
    >>> calculate_volume_sizes([], 15), calculate_volume_sizes([], 0)
    ([15], [])
    """
    if not starts:
        return [total] if total > 0 else []
    sizes: List[int] = []
    prev = starts[0]
    for cur in starts[1:]:
        if cur - prev > 0:
            sizes.append(cur - prev)
        prev = cur
    remaining = max(total - prev, 0)
    if remaining > 0:
        sizes.append(remaining)
    elif not sizes and total > 0:
        sizes.append(total)
    return sizes


def partition(chapters: List[Chapter], counts: Sequence[int]) -> List[Volume]:
    """Slice `chapters` contiguously into volumes of `counts` chapters each."""
    volumes: List[Volume] = []
    pos = 0
    for n in counts:
        volumes.append(chapters[pos:pos + n])
        pos += n
    return volumes


def _report(total: int, counts: List[int]) -> VolumeStructureReport:
    return VolumeStructureReport(total, len(counts), list(counts))


def structure_flat(chapters: List[Chapter]) -> StructuredContent:
    pages = [p for chapter in chapters for p in chapter]
    return StructuredContent([[pages]], _report(len(chapters), [len(chapters)]))


def structure_manual(chapters: List[Chapter], sizes: Sequence[int] = ()) -> StructuredContent:
    total = len(chapters)
    if not sizes:
        counts = [total] if total else []
    else:
        requested = sum(sizes)
        if requested > total:
            raise VolumeStructureError(
                f"Manual volume sizes ({', '.join(str(s) for s in sizes)}) "
                f"exceed available chapters ({total})"
            )
        counts = list(sizes)
        if requested < total:
            logger.info(f"[structure] {total - requested} leftover chapter(s) go to a final volume")
            counts.append(total - requested)
    return StructuredContent(partition(chapters, counts), _report(total, counts))


def _chapter_dir(chapter: Chapter) -> Path:
    # empty chapters have no page to name them by
    return chapter[0].parent if chapter else Path("")


def structure_by_name(
    chapters: List[Chapter],
    sorter: Optional[PathSorter] = None,
    pattern: Optional[re.Pattern] = None,
) -> StructuredContent:
    """Group chapters whose folder names read `<volume>-<chapter>`.

    Chapters are sorted by their folder name, then a volume starts at each
    chapter whose volume number is positive and greater than the previous
    chapter's. A missing or zero volume number never opens a volume.
    """
    pattern = pattern or re.compile(DEFAULT_VOLUME_CHAPTER_PATTERN)
    if sorter is None:
        sorter = functools.partial(compare_volume_chapter, pattern=pattern)
    ordered = sorted(
        chapters, key=functools.cmp_to_key(lambda a, b: sorter(_chapter_dir(a), _chapter_dir(b)))
    )

    starts = [0] if ordered else []
    prev = volume_number(_chapter_dir(ordered[0]).name, pattern) if ordered else 0.0
    for i in range(1, len(ordered)):
        cur = volume_number(_chapter_dir(ordered[i]).name, pattern)
        if cur > 0 and cur > prev:
            starts.append(i)
        prev = cur
    counts = calculate_volume_sizes(starts, len(ordered))
    logger.debug(f"[structure] name boundaries at {starts}")
    return StructuredContent(partition(ordered, counts), _report(len(chapters), counts))


def structure_by_image_analysis(
    chapters: List[Chapter], sensitivity: float, max_workers: int = 8
) -> StructuredContent:
    starts = determine_volume_start_chapters(chapters, sensitivity, max_workers=max_workers)
    counts = calculate_volume_sizes(starts, len(chapters))
    return StructuredContent(partition(chapters, counts), _report(len(chapters), counts))


def structure_chapters(
    chapters: List[Chapter],
    strategy: VolumeGroupingStrategy,
    sensitivity: float = 0.75,
    volume_sizes: Tuple[int, ...] = (),
    chapter_sorter: Optional[PathSorter] = None,
    volume_chapter_pattern: Optional[re.Pattern] = None,
    max_workers: int = 8,
) -> StructuredContent:
    """Dispatch to the structuring routine for `strategy`.

    `sensitivity` is a fraction in [0, 1] used by image analysis only.
    """
    if strategy == VolumeGroupingStrategy.FLAT:
        result = structure_flat(chapters)
    elif strategy == VolumeGroupingStrategy.MANUAL:
        result = structure_manual(chapters, volume_sizes)
    elif strategy == VolumeGroupingStrategy.NAME:
        result = structure_by_name(chapters, chapter_sorter, volume_chapter_pattern)
    elif strategy == VolumeGroupingStrategy.IMAGE_ANALYSIS:
        result = structure_by_image_analysis(chapters, sensitivity, max_workers)
    else:
        raise VolumeStructureError(f"unknown grouping strategy: {strategy}")

    report = result.report
    logger.info(
        f"[structure] {strategy.value}: {report.total_chapters_processed} chapters -> "
        f"{report.total_volumes_created} volume(s) {report.chapter_counts_per_volume}"
    )
    return result
