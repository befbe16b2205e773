"""Top-level entry points chaining collection, structuring and generation."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .collector import DirectoryCollector, ensure_source_dir
from .config import ConversionConfig
from .errors import ConfigError, NotFoundError
from .structure import structure_chapters
from .types_ import (
    Chapter,
    CollectedContent,
    CoverOptions,
    ExecutionMode,
    StructuredContent,
    Volume,
)
from .utils import sanitize_filename
from .worker import generate_volumes, plan_volumes

logger = logging.getLogger(__name__)


def preflight_check(config: ConversionConfig, mode: ExecutionMode) -> None:
    """Validate the parts of `config` that depend on the execution mode.

    Raises:
        ConfigError: on an empty title or a missing target path.
        NotFoundError: when converting from source and the source is missing.
        InvalidPathError: when the source is not a directory.
    """
    if not config.metadata.title.strip():
        raise ConfigError("a non-empty title is required")
    if config.target_path is None:
        raise ConfigError("a target path is required")
    if mode == ExecutionMode.FROM_SOURCE:
        ensure_source_dir(config.source_path)


def make_collector(config: ConversionConfig) -> DirectoryCollector:
    return DirectoryCollector(
        config.source_path,
        depth=config.collection_depth,
        chapter_pattern=config.chapter_sort_pattern,
        page_pattern=config.page_sort_pattern,
        chapter_sorter=config.chapter_sorter,
        page_sorter=config.page_sorter,
        volume_chapter_pattern=config.volume_chapter_pattern,
        max_workers=config.scan_workers,
    )


def analyze_source(config: ConversionConfig) -> CollectedContent:
    """Collect chapters and pages from the source directory and analyze them."""
    source = ensure_source_dir(config.source_path)
    logger.info(f"analyzing {source} ({config.collection_depth.value})")
    return make_collector(config).analyze_source_content()


def structure_from_collected_data(
    config: ConversionConfig, chapters: List[Chapter]
) -> StructuredContent:
    return structure_chapters(
        chapters,
        config.volume_grouping_strategy,
        sensitivity=config.sensitivity,
        volume_sizes=config.volume_sizes_override,
        chapter_sorter=config.chapter_sorter,
        volume_chapter_pattern=config.volume_chapter_pattern,
        max_workers=config.analysis_workers,
    )


def resolve_target_dir(config: ConversionConfig) -> Path:
    """Return the directory receiving the output, creating the per-title folder if asked."""
    target = Path(config.target_path)
    if config.create_output_directory:
        target = target / sanitize_filename(config.metadata.title)
        target.mkdir(parents=True, exist_ok=True)
    elif not target.is_dir():
        raise NotFoundError(f"target directory does not exist: {target}")
    return target


def convert_from_structured_data(
    config: ConversionConfig,
    volumes: List[Volume],
    cover_options: Optional[CoverOptions] = None,
) -> List[Path]:
    """Write one container per volume and return the generated paths in volume order.

    Raises:
        NotFoundError: when there is nothing to generate (no volumes, or a
                       volume without any page) or the target is missing.
    """
    preflight_check(config, ExecutionMode.FROM_STRUCTURED_DATA)
    target = resolve_target_dir(config)
    if not volumes:
        raise NotFoundError("No volumes found for generation.")
    for idx, volume in enumerate(volumes):
        if not any(volume):
            raise NotFoundError(f"No volumes found for generation: volume {idx + 1} has no pages.")

    tasks = plan_volumes(
        volumes, config.metadata, config.volume_separator, cover_options or CoverOptions.none()
    )
    paths = generate_volumes(
        tasks,
        target,
        config.output_format,
        direction=config.reading_direction,
        max_workers=config.generation_workers,
    )
    logger.info(f"generated {len(paths)} {config.output_format.value} file(s) in {target}")
    return paths


def convert_from_collected_data(
    config: ConversionConfig,
    chapters: List[Chapter],
    cover_options: Optional[CoverOptions] = None,
) -> List[Path]:
    preflight_check(config, ExecutionMode.FROM_COLLECTED_DATA)
    structured = structure_from_collected_data(config, chapters)
    return convert_from_structured_data(config, structured.volumes, cover_options)


def convert_from_source(
    config: ConversionConfig, cover_options: Optional[CoverOptions] = None
) -> List[Path]:
    """Collect, structure and generate in one call."""
    preflight_check(config, ExecutionMode.FROM_SOURCE)
    collected = analyze_source(config)
    return convert_from_collected_data(config, collected.chapters, cover_options)
