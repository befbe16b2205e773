"""Worker primitives: per-volume generation and the concurrent dispatcher."""

from __future__ import annotations

import concurrent.futures
import copy
import logging
import os
from pathlib import Path
from typing import List, NamedTuple, Optional

from .errors import AsyncTaskError, TankobonError, UnsupportedFormatError
from .generators import create_generator
from .types_ import Chapter, CoverOptions, Direction, EbookMetadata, FileFormat, Volume
from .utils import sanitize_filename

logger = logging.getLogger(__name__)

UNTITLED_CHAPTER = "Untitled Chapter"


class VolumeTask(NamedTuple):
    """Everything needed to write one volume, independent of other volumes."""

    index: int
    number: int
    file_name_base: str
    chapters: List[Chapter]
    chapter_titles: List[str]
    total_pages: int
    cover: Optional[Path]
    metadata: EbookMetadata


def volume_file_name(title: str, separator: str, number: int, volume_count: int) -> str:
    """Base name (without extension) of a generated volume.

    >>> volume_file_name('Dorohedoro', ' - ', 2, 5)
    'Dorohedoro - Volume 2'
    >>> volume_file_name('Dorohedoro', ' - ', 1, 1)
    'Dorohedoro'
    """
    if volume_count > 1:
        return f"{title}{separator}Volume {number}"
    return title


def chapter_title(chapter: Chapter) -> str:
    if not chapter:
        return UNTITLED_CHAPTER
    return chapter[0].parent.name or UNTITLED_CHAPTER


def plan_volumes(
    volumes: List[Volume],
    metadata: EbookMetadata,
    separator: str,
    cover_options: CoverOptions,
) -> List[VolumeTask]:
    tasks = []
    for idx, volume in enumerate(volumes):
        tasks.append(
            VolumeTask(
                index=idx,
                number=idx + 1,
                file_name_base=sanitize_filename(
                    volume_file_name(metadata.title, separator, idx + 1, len(volumes))
                ),
                chapters=volume,
                chapter_titles=[chapter_title(c) for c in volume],
                total_pages=sum(len(c) for c in volume),
                cover=cover_options.cover_for(idx),
                # each task owns its copy
                metadata=copy.deepcopy(metadata),
            )
        )
    return tasks


def generate_volume(
    task: VolumeTask,
    target_dir: Path,
    output_format: FileFormat,
    direction: Direction = Direction.LTR,
) -> Path:
    """Write one volume container and return its path.

    Raises:
        UnsupportedFormatError: for EPUB output when no cover is available.
        OSError: when an image cannot be read or the output cannot be written.
    """
    logger.debug(f"[worker] start volume {task.number}: {task.file_name_base}")
    writer = create_generator(output_format, target_dir, task.file_name_base, direction)
    try:
        cover = task.cover
        if cover is None and writer.requires_cover:
            first = next((c[0] for c in task.chapters if c), None)
            if first is None:
                raise UnsupportedFormatError(
                    f"volume {task.number} has no page to use as {output_format.value} cover"
                )
            cover = first
        if cover is not None:
            writer.set_cover(cover)

        for title, chapter in zip(task.chapter_titles, task.chapters):
            writer.start_chapter(title)
            for page in chapter:
                writer.add_page(page)

        writer.set_metadata(task.metadata, task.number, task.total_pages, task.chapter_titles)
        out = writer.save()
    except Exception:
        writer.discard()
        raise
    logger.info(f"[worker] wrote volume {task.number}: {out.name} ({task.total_pages} pages)")
    return out


def generate_volumes(
    tasks: List[VolumeTask],
    target_dir: Path,
    output_format: FileFormat,
    direction: Direction = Direction.LTR,
    max_workers: Optional[int] = None,
) -> List[Path]:
    """Generate all volumes concurrently and return their paths in volume order.

    Every task runs to completion; afterwards the first failure in volume
    order is raised. Domain errors and OSError propagate unchanged, anything
    else is wrapped in AsyncTaskError.
    """
    if max_workers is None:
        max_workers = min(4, os.cpu_count() or 1)
    workers = max(1, min(max_workers, len(tasks)))

    logger.info(f"[info] planned volumes ({output_format.value}):")
    for t in tasks:
        logger.info(f"[info]  {t.file_name_base} <- {len(t.chapters)} chapters, {t.total_pages} pages")

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [
            ex.submit(generate_volume, t, target_dir, output_format, direction) for t in tasks
        ]
        concurrent.futures.wait(futures)

    paths: List[Path] = []
    first_error: Optional[BaseException] = None
    for t, fut in zip(tasks, futures):
        exc = fut.exception()
        if exc is None:
            paths.append(fut.result())
            continue
        logger.error(f"volume {t.number} failed: {exc}")
        if first_error is None:
            first_error = exc
    if first_error is not None:
        if isinstance(first_error, (TankobonError, OSError)):
            raise first_error
        raise AsyncTaskError(f"volume generation crashed: {first_error!r}") from first_error
    return paths
