"""CLI layer: argument parsing, config building, and top-level orchestration."""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .config import build_config, load_config_from_path, load_metadata, parse_volume_sizes
from .errors import (
    ConfigError,
    InvalidPathError,
    NotFoundError,
    TankobonError,
    VolumeStructureError,
)
from .pipeline import (
    analyze_source,
    convert_from_structured_data,
    preflight_check,
    structure_from_collected_data,
)
from .types_ import CollectedContent, CoverOptions, ExecutionMode, StructuredContent

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_NOT_FOUND = 3
EXIT_STRUCTURE = 4
EXIT_GENERATION = 6


def setup_logging(verbose: bool = False, loglevel: Optional[str] = None, force_color: Optional[bool] = None):
    """Configure root logger with a compact, colored formatter and emoji prefixes.

    - verbose -> DEBUG level, otherwise INFO
    - loglevel: explicit string level to override verbose (e.g. DEBUG|INFO|WARNING|ERROR)
    - force_color: True/False to override automatic TTY detection
    """
    root = logging.getLogger()
    root.handlers.clear()

    if loglevel:
        lvl = loglevel.upper()
        if lvl == 'WARN':
            lvl = 'WARNING'
        level = getattr(logging, lvl, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()

    stream = handler.stream
    if force_color is None:
        use_color = hasattr(stream, "isatty") and stream.isatty()
    else:
        use_color = force_color

    handler.setFormatter(ColorFormatter(use_color))
    root.setLevel(level)
    root.addHandler(handler)


class ColorFormatter(logging.Formatter):
    COLORS = {
        'DEBUG': '\x1b[34m',    # blue
        'INFO': '\x1b[32m',     # green
        'WARNING': '\x1b[33m',  # yellow
        'ERROR': '\x1b[31m',    # red
        'CRITICAL': '\x1b[31;1m',
    }
    EMOJI = {
        'DEBUG': '🔧',
        'INFO': '✅',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '💥',
    }
    RESET = '\x1b[0m'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        emoji = self.EMOJI.get(level, '')
        if self.use_color:
            prefix = f"{self.COLORS.get(level, '')}{emoji} {level}:{self.RESET}"
        else:
            prefix = f"{emoji} {level}:"
        formatted = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            formatted = f"{formatted}\n{self.formatException(record.exc_info)}"
        return formatted


def print_report(collected: CollectedContent) -> None:
    report = collected.report
    pages = sum(len(c) for c in collected.chapters)
    print(f"chapters: {len(collected.chapters)}")
    print(f"pages: {pages}")
    strategy = report.recommended_strategy.value if report.recommended_strategy else "none"
    print(f"recommended strategy: {strategy}")
    for f in report.findings:
        where = f" [{f.path}]" if f.path is not None else ""
        print(f"{f.severity.value:8} {f.kind.value}: {f.message}{where}")


def print_plan(structured: StructuredContent) -> None:
    for number, volume in enumerate(structured.volumes, start=1):
        pages = sum(len(c) for c in volume)
        names = ", ".join(c[0].parent.name for c in volume if c)
        print(f"volume {number}: {len(volume)} chapters, {pages} pages ({names})")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tankobon", description="Pack chapter image folders into CBZ or EPUB volumes"
    )
    p.add_argument('--path', required=True, help='source directory holding chapter folders')
    p.add_argument('--dest', default=None, help='destination root (defaults to the parent of --path)')
    p.add_argument('--title', default=None, help='book title (can be provided via tankobon.json or --metadata)')
    p.add_argument('--metadata', default=None, help='YAML file with series metadata')
    p.add_argument('--format', choices=['cbz', 'epub'], default=None, help='output format (default cbz)')
    p.add_argument('--strategy', choices=['manual', 'name', 'image', 'flat', 'auto'], default=None,
                   help='volume grouping strategy (default manual); auto uses the analysis recommendation')
    p.add_argument('--volume-sizes', default=None, help='chapters per volume for manual grouping, e.g. "10,8,9"')
    p.add_argument('--depth', choices=['deep', 'shallow'], default=None,
                   help='deep: one subfolder per chapter; shallow: pages directly in --path')
    p.add_argument('--sensitivity', type=int, default=None, help='grayscale sensitivity in percent (default 75)')
    p.add_argument('--chapter-regex', default=None, help='regex extracting the chapter sort number')
    p.add_argument('--page-regex', default=None, help='regex extracting the page sort number')
    p.add_argument('--separator', default=None, help='separator between title and "Volume N" (default " - ")')
    p.add_argument('--cover', default=None, help='cover image used for every volume')
    p.add_argument('--rtl', action='store_true', help='right-to-left reading direction')
    p.add_argument('--no-output-dir', action='store_true', help='write directly into --dest instead of dest/<title>')
    p.add_argument('--nb-worker', type=int, default=None, help='number of volumes generated in parallel')
    p.add_argument('--analyze-only', action='store_true', help='print the analysis report and exit')
    p.add_argument('--dry-run', action='store_true', help='print the volume plan without writing files')
    p.add_argument('--verbose', action='store_true', help='verbose logging')
    p.add_argument('--loglevel', type=str, default=None,
                   choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL', 'WARN'],
                   help='explicit log level (overrides --verbose)')
    return p


def _pick(cli_value, path_config: dict, key: str, default=None):
    if cli_value is not None:
        return cli_value
    return path_config.get(key, default)


def main(argv=None) -> int:
    """Command-line entry point for the `tankobon` tool.

    Returns:
        int: exit code. 0 on success, 2 on configuration errors, 3 when the
        source is missing or holds no pages, 4 when chapters cannot be
        grouped as requested, 6 when writing a volume fails.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, loglevel=args.loglevel)

    source = Path(args.path)
    try:
        path_config = load_config_from_path(source) if source.is_dir() else {}
        metadata_file = _pick(args.metadata, path_config, 'metadata')
        metadata = None
        if metadata_file:
            metadata_path = Path(metadata_file)
            if not metadata_path.is_absolute() and not metadata_path.exists():
                metadata_path = source / metadata_path
            metadata = load_metadata(metadata_path)
        title = _pick(args.title, path_config, 'title')
        if metadata is None and title is None:
            raise ConfigError('either --title, --metadata or a `title` key in tankobon.json must be provided')

        strategy = _pick(args.strategy, path_config, 'strategy', 'manual')
        sizes = _pick(args.volume_sizes, path_config, 'volume_sizes', ())
        if isinstance(sizes, str):
            sizes = parse_volume_sizes(sizes)
        options = {}
        workers = _pick(args.nb_worker, path_config, 'nb_worker')
        if workers is not None:
            options['generation_workers'] = int(workers)

        cfg = build_config(
            title=title,
            metadata=metadata,
            source_path=source,
            target_path=Path(args.dest) if args.dest else source.resolve().parent,
            output_format=_pick(args.format, path_config, 'format', 'cbz'),
            reading_direction='rtl' if args.rtl else path_config.get('direction', 'ltr'),
            collection_depth=_pick(args.depth, path_config, 'depth', 'deep'),
            volume_grouping_strategy='manual' if strategy == 'auto' else strategy,
            volume_sizes_override=tuple(int(s) for s in sizes),
            create_output_directory=not args.no_output_dir,
            image_analysis_sensitivity=_pick(args.sensitivity, path_config, 'sensitivity', 75),
            volume_separator=_pick(args.separator, path_config, 'separator', ' - '),
            chapter_name_regex=_pick(args.chapter_regex, path_config, 'chapter_regex'),
            page_name_regex=_pick(args.page_regex, path_config, 'page_regex'),
            **options,
        )
        preflight_check(cfg, ExecutionMode.FROM_SOURCE)
    except (ConfigError, ValueError) as e:
        logger.error(str(e))
        return EXIT_CONFIG
    except (NotFoundError, InvalidPathError, FileNotFoundError) as e:
        logger.error(str(e))
        return EXIT_NOT_FOUND

    try:
        collected = analyze_source(cfg)
    except OSError as e:
        logger.error(f"cannot read {source}: {e}")
        return EXIT_NOT_FOUND
    if args.analyze_only:
        print_report(collected)
        return EXIT_OK
    if not any(collected.chapters):
        logger.error(f'no pages found under {source}')
        return EXIT_NOT_FOUND

    if strategy == 'auto' and collected.report.recommended_strategy is not None:
        cfg = replace(cfg, volume_grouping_strategy=collected.report.recommended_strategy)
        logger.info(f'using recommended strategy: {cfg.volume_grouping_strategy.value}')

    try:
        structured = structure_from_collected_data(cfg, collected.chapters)
    except VolumeStructureError as e:
        logger.error(str(e))
        return EXIT_STRUCTURE

    if args.dry_run:
        print_plan(structured)
        return EXIT_OK

    cover = _pick(args.cover, path_config, 'cover')
    covers = CoverOptions.single_image(Path(cover)) if cover else CoverOptions.none()
    try:
        paths = convert_from_structured_data(cfg, structured.volumes, covers)
    except (TankobonError, OSError) as e:
        logger.error(str(e))
        return EXIT_GENERATION

    for p in paths:
        print(p)
    logger.info('Done')
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
