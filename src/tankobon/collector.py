"""Source tree discovery: chapters, pages and the analysis report."""
from __future__ import annotations

import concurrent.futures
import functools
import logging
import os
import re
from pathlib import Path
from statistics import mean
from typing import Dict, List, Optional, Set

from .core import (
    DEFAULT_VOLUME_CHAPTER_PATTERN,
    compare_by_number,
    extract_number,
    is_hidden,
    is_supported_image,
)
from .errors import InvalidPathError, NotFoundError
from .types_ import (
    AnalyzeFinding,
    AnalyzeReport,
    Chapter,
    CollectedContent,
    CollectionDepth,
    FindingKind,
    PathSorter,
    Severity,
    VolumeGroupingStrategy,
)
from .utils import validate_path

logger = logging.getLogger(__name__)

PAGE_COUNT_TOLERANCE = 0.3
FILE_SIZE_FACTOR = 3
MIN_MEAN_SIZE_KB = 10


def list_entries(directory: Path, only_dirs: bool) -> List[Path]:
    """List the visible entries of `directory`.

    With `only_dirs` only subdirectories are returned, otherwise only files
    that are supported page images. Order is the platform enumeration order.

    Raises:
        OSError: if the directory cannot be read.
    """
    entries: List[Path] = []
    with os.scandir(directory) as it:
        for entry in it:
            path = Path(entry.path)
            if is_hidden(path):
                continue
            if entry.is_dir() != only_dirs:
                continue
            if not only_dirs and not is_supported_image(path):
                continue
            entries.append(path)
    return entries


def collect_all_files(directory: Path) -> List[Path]:
    """Every visible non-directory entry of `directory`, images or not."""
    with os.scandir(directory) as it:
        return [Path(e.path) for e in it if not is_hidden(e.name) and not e.is_dir()]


class DirectoryCollector:
    """Discovers chapters and pages under `base_dir`.

    Chapters are the subdirectories of `base_dir` (deep collection) or
    `base_dir` itself (shallow collection). Sorting uses the injected
    comparators when given, else the number extracted with `chapter_pattern`
    / `page_pattern`.
    """

    def __init__(
        self,
        base_dir: Path,
        depth: CollectionDepth = CollectionDepth.DEEP,
        chapter_pattern: Optional[re.Pattern] = None,
        page_pattern: Optional[re.Pattern] = None,
        chapter_sorter: Optional[PathSorter] = None,
        page_sorter: Optional[PathSorter] = None,
        volume_chapter_pattern: Optional[re.Pattern] = None,
        max_workers: int = 64,
    ):
        self.base_dir = Path(base_dir)
        self.depth = depth
        self.chapter_pattern = chapter_pattern
        self.page_pattern = page_pattern
        self.chapter_sorter = chapter_sorter
        self.page_sorter = page_sorter
        self.volume_chapter_pattern = volume_chapter_pattern
        self.max_workers = max_workers

    def _sort(self, paths: List[Path], sorter: Optional[PathSorter], pattern) -> List[Path]:
        if sorter is None:
            sorter = functools.partial(compare_by_number, pattern=pattern)
        # sorted() is stable: equal keys keep enumeration order
        return sorted(paths, key=functools.cmp_to_key(sorter))

    def collect_chapters(self) -> List[Path]:
        if self.depth == CollectionDepth.SHALLOW:
            return [self.base_dir]
        dirs = list_entries(self.base_dir, only_dirs=True)
        chapters = self._sort(dirs, self.chapter_sorter, self.chapter_pattern)
        logger.debug(f"found {len(chapters)} chapter dirs in {self.base_dir}")
        return chapters

    def _collect_one(self, chapter_dir: Path) -> Chapter:
        pages = list_entries(chapter_dir, only_dirs=False)
        logger.debug(f"[collect] {chapter_dir.name}: {len(pages)} pages")
        return self._sort(pages, self.page_sorter, self.page_pattern)

    def collect_pages(self, chapter_dirs: List[Path]) -> List[Chapter]:
        """Collect the sorted pages of every chapter, in chapter order.

        Directories are scanned concurrently; the first failure cancels the
        remaining scans and is raised.
        """
        if not chapter_dirs:
            return []
        results: List[Optional[Chapter]] = [None] * len(chapter_dirs)
        workers = min(self.max_workers, len(chapter_dirs))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
            futures = {
                ex.submit(self._collect_one, d): idx for idx, d in enumerate(chapter_dirs)
            }
            done, pending = concurrent.futures.wait(
                futures, return_when=concurrent.futures.FIRST_EXCEPTION
            )
            for fut in done:
                exc = fut.exception()
                if exc is not None:
                    for p in pending:
                        p.cancel()
                    raise exc
            for fut, idx in futures.items():
                results[idx] = fut.result()
        return [r for r in results if r is not None]

    def analyze_source_content(self) -> CollectedContent:
        """Collect chapters and pages and inspect them for likely problems."""
        chapter_dirs = self.collect_chapters()
        if not chapter_dirs:
            finding = AnalyzeFinding(
                FindingKind.NO_CHAPTERS_FOUND, self.base_dir, "no chapter directories found"
            )
            logger.warning(f"{finding.message} in {self.base_dir}")
            return CollectedContent([], [], AnalyzeReport((finding,), None))

        chapters = self.collect_pages(chapter_dirs)
        if not any(chapters):
            finding = AnalyzeFinding(
                FindingKind.NO_PAGES_FOUND, self.base_dir, "no supported page images found"
            )
            logger.warning(f"{finding.message} in {self.base_dir}")
            return CollectedContent(chapters, chapter_dirs, AnalyzeReport((finding,), None))

        findings: List[AnalyzeFinding] = []
        recommended = self._check_naming(chapter_dirs, findings)
        self._check_unsupported(chapter_dirs, chapters, findings)
        self._check_page_counts(chapter_dirs, chapters, findings)
        self._check_files(chapters, findings)

        for f in findings:
            log = logger.info if f.severity == Severity.POSITIVE else logger.warning
            log(f"[analyze] {f.kind.value}: {f.message}")
        report = AnalyzeReport(tuple(findings), recommended)
        logger.info(
            f"collected {len(chapters)} chapters, {sum(len(c) for c in chapters)} pages; "
            f"recommended strategy: {recommended.value}"
        )
        return CollectedContent(chapters, chapter_dirs, report)

    def _check_naming(self, chapter_dirs: List[Path], findings: List[AnalyzeFinding]):
        pattern = self.volume_chapter_pattern or re.compile(DEFAULT_VOLUME_CHAPTER_PATTERN)
        named = [d for d in chapter_dirs if pattern.search(d.name)]
        if named:
            findings.append(
                AnalyzeFinding(
                    FindingKind.CONSISTENT_NAMING,
                    self.base_dir,
                    f"{len(named)}/{len(chapter_dirs)} chapters follow the volume-chapter naming",
                    (("matching", len(named)),),
                )
            )
            recommended = VolumeGroupingStrategy.NAME
        else:
            recommended = VolumeGroupingStrategy.IMAGE_ANALYSIS

        if self.depth == CollectionDepth.DEEP:
            for d in chapter_dirs:
                if extract_number(d.name) is None:
                    findings.append(
                        AnalyzeFinding(
                            FindingKind.MISSING_NUMERIC_IDENTIFIER,
                            d,
                            f"chapter {d.name!r} has no number to sort by",
                        )
                    )
        return recommended

    def _check_unsupported(
        self, chapter_dirs: List[Path], chapters: List[Chapter], findings: List[AnalyzeFinding]
    ) -> None:
        collected: Set[Path] = {p for chapter in chapters for p in chapter}
        for d in chapter_dirs:
            for path in collect_all_files(d):
                if path in collected or is_supported_image(path):
                    continue
                findings.append(
                    AnalyzeFinding(
                        FindingKind.UNSUPPORTED_FILE_IGNORED, path, f"ignored {path.name}"
                    )
                )

    def _check_page_counts(
        self, chapter_dirs: List[Path], chapters: List[Chapter], findings: List[AnalyzeFinding]
    ) -> None:
        if len(chapters) <= 1:
            return
        avg = mean(len(c) for c in chapters)
        threshold = max(avg * PAGE_COUNT_TOLERANCE, 1.0)
        for d, pages in zip(chapter_dirs, chapters):
            if abs(len(pages) - avg) > threshold:
                findings.append(
                    AnalyzeFinding(
                        FindingKind.INCONSISTENT_PAGE_COUNT,
                        d,
                        f"{d.name} has {len(pages)} pages, expected about {round(avg)}",
                        (("expected", round(avg)), ("found", len(pages))),
                    )
                )

    def _check_files(self, chapters: List[Chapter], findings: List[AnalyzeFinding]) -> None:
        sizes: Dict[Path, float] = {}
        for page in (p for chapter in chapters for p in chapter):
            try:
                validate_path(page)
            except InvalidPathError as e:
                findings.append(
                    AnalyzeFinding(FindingKind.SPECIAL_CHARACTERS_IN_PATH, page, e.reason)
                )
            try:
                sizes[page] = page.stat().st_size / 1024
            except PermissionError as e:
                findings.append(
                    AnalyzeFinding(FindingKind.PERMISSION_DENIED, page, str(e))
                )

        if not sizes:
            return
        avg = mean(sizes.values())
        for page, size in sizes.items():
            too_big = size > avg * FILE_SIZE_FACTOR
            too_small = avg > MIN_MEAN_SIZE_KB and size < avg / FILE_SIZE_FACTOR
            if too_big or too_small:
                findings.append(
                    AnalyzeFinding(
                        FindingKind.UNUSUAL_FILE_SIZE,
                        page,
                        f"{page.name} is {size:.1f} KiB (mean {avg:.1f} KiB)",
                        (("size_kb", round(size, 1)), ("mean_kb", round(avg, 1))),
                    )
                )


def ensure_source_dir(path: Optional[Path]) -> Path:
    if path is None:
        raise NotFoundError("no source path configured")
    path = Path(path)
    if not path.exists():
        raise NotFoundError(f"source path does not exist: {path}")
    if not path.is_dir():
        raise InvalidPathError(path, "source path is not a directory")
    return path
