"""Validated conversion configuration plus the JSON/YAML loaders feeding it."""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import yaml

from .core import DEFAULT_NUMBER_PATTERN, DEFAULT_VOLUME_CHAPTER_PATTERN
from .errors import ConfigError
from .types_ import (
    CollectionDepth,
    Direction,
    EbookMetadata,
    FileFormat,
    PathSorter,
    VolumeGroupingStrategy,
)

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "tankobon.json"
DEFAULT_SENSITIVITY = 75
DEFAULT_SEPARATOR = " - "
SCAN_WORKERS = 64


def default_analysis_workers() -> int:
    return min(os.cpu_count() or 1, 8)


def default_generation_workers() -> int:
    return min(os.cpu_count() or 1, 4)


def _compile(name: str, regex: Optional[str]) -> Optional[re.Pattern]:
    if regex is None:
        return None
    try:
        return re.compile(regex)
    except re.error as e:
        raise ConfigError(f"Invalid {name} {regex!r}: {e}") from e


@dataclass(frozen=True)
class ConversionConfig:
    """Runtime configuration for one conversion.

    Validation happens in `__post_init__`, so an instance that exists is
    always usable: regexes compile, sensitivity is a percentage, worker
    counts and manual volume sizes are positive. Title and target checks
    depend on the execution mode and live in `pipeline.preflight_check`.

    Attributes:
        metadata: metadata copied into every volume; its title names the output.
        source_path: root directory holding chapter folders (or pages).
        target_path: directory receiving the generated files.
        image_analysis_sensitivity: grayscale threshold in percent (0-100).
        volume_sizes_override: chapter count per volume for the manual strategy.
        chapter_sorter/page_sorter: optional comparators replacing the numeric sort.
    """

    metadata: EbookMetadata
    source_path: Optional[Path] = None
    target_path: Optional[Path] = None
    output_format: FileFormat = FileFormat.CBZ
    reading_direction: Direction = Direction.LTR
    create_output_directory: bool = True
    collection_depth: CollectionDepth = CollectionDepth.DEEP
    image_analysis_sensitivity: int = DEFAULT_SENSITIVITY
    volume_grouping_strategy: VolumeGroupingStrategy = VolumeGroupingStrategy.MANUAL
    volume_separator: str = DEFAULT_SEPARATOR
    chapter_name_regex: Optional[str] = None
    page_name_regex: Optional[str] = None
    chapter_sorter: Optional[PathSorter] = None
    page_sorter: Optional[PathSorter] = None
    volume_sizes_override: Tuple[int, ...] = ()
    scan_workers: int = SCAN_WORKERS
    analysis_workers: int = field(default_factory=default_analysis_workers)
    generation_workers: int = field(default_factory=default_generation_workers)

    number_pattern: re.Pattern = field(init=False, repr=False, compare=False)
    volume_chapter_pattern: re.Pattern = field(init=False, repr=False, compare=False)
    chapter_pattern: Optional[re.Pattern] = field(init=False, repr=False, compare=False)
    page_pattern: Optional[re.Pattern] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # frozen: derived fields must go through object.__setattr__
        set_ = object.__setattr__
        set_(self, "number_pattern", re.compile(DEFAULT_NUMBER_PATTERN))
        set_(self, "volume_chapter_pattern", re.compile(DEFAULT_VOLUME_CHAPTER_PATTERN))
        set_(self, "chapter_pattern", _compile("chapter name regex", self.chapter_name_regex))
        set_(self, "page_pattern", _compile("page name regex", self.page_name_regex))

        if self.source_path is not None:
            set_(self, "source_path", Path(self.source_path))
        if self.target_path is not None:
            set_(self, "target_path", Path(self.target_path))

        if not isinstance(self.image_analysis_sensitivity, int) or not (
            0 <= self.image_analysis_sensitivity <= 100
        ):
            raise ConfigError(
                f"Image analysis sensitivity must be between 0 and 100, got {self.image_analysis_sensitivity!r}"
            )
        for name in ("scan_workers", "analysis_workers", "generation_workers"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1")

        sizes = tuple(self.volume_sizes_override)
        if any(not isinstance(s, int) or s <= 0 for s in sizes):
            raise ConfigError(f"Manual volume sizes must be positive integers, got {list(sizes)}")
        set_(self, "volume_sizes_override", sizes)

    @property
    def sensitivity(self) -> float:
        """Sensitivity as a fraction in [0, 1]."""
        return self.image_analysis_sensitivity / 100

    @property
    def chapter_sort_pattern(self) -> re.Pattern:
        return self.chapter_pattern or self.number_pattern

    @property
    def page_sort_pattern(self) -> re.Pattern:
        return self.page_pattern or self.number_pattern


def _enum(enum_cls, value, name: str):
    if isinstance(value, enum_cls) or value is None:
        return value
    text = str(value).strip().lower().replace("-", "_")
    # short aliases used on the command line
    aliases = {"image": "image_analysis", "analysis": "image_analysis"}
    text = aliases.get(text, text)
    try:
        return enum_cls(text)
    except ValueError as e:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigError(f"Invalid {name} {value!r} (expected one of: {choices})") from e


def build_config(
    title: Optional[str] = None,
    metadata: Optional[EbookMetadata] = None,
    source_path: Union[str, Path, None] = None,
    target_path: Union[str, Path, None] = None,
    output_format: Union[str, FileFormat] = FileFormat.CBZ,
    reading_direction: Union[str, Direction] = Direction.LTR,
    collection_depth: Union[str, CollectionDepth] = CollectionDepth.DEEP,
    volume_grouping_strategy: Union[str, VolumeGroupingStrategy] = VolumeGroupingStrategy.MANUAL,
    volume_sizes_override: Sequence[int] = (),
    **options: Any,
) -> ConversionConfig:
    """Build a ConversionConfig from plain values, accepting strings for enums.

    Either `metadata` or `title` must be given; `title` alone produces
    default metadata. Remaining keyword options are passed through.
    """
    if metadata is None:
        if title is None:
            raise ConfigError("either metadata or a title must be provided")
        metadata = EbookMetadata.default_with_title(title)
    elif title is not None:
        metadata.title = title

    return ConversionConfig(
        metadata=metadata,
        source_path=Path(source_path) if source_path is not None else None,
        target_path=Path(target_path) if target_path is not None else None,
        output_format=_enum(FileFormat, output_format, "output format"),
        reading_direction=_enum(Direction, reading_direction, "reading direction"),
        collection_depth=_enum(CollectionDepth, collection_depth, "collection depth"),
        volume_grouping_strategy=_enum(
            VolumeGroupingStrategy, volume_grouping_strategy, "volume grouping strategy"
        ),
        volume_sizes_override=tuple(volume_sizes_override),
        **options,
    )


def parse_volume_sizes(text: str) -> Tuple[int, ...]:
    """Parse a comma separated list of chapter counts.

    >>> parse_volume_sizes('10, 8,5')
    (10, 8, 5)
    """
    try:
        return tuple(int(p) for p in text.split(",") if p.strip())
    except ValueError as e:
        raise ConfigError(f"Invalid volume sizes {text!r}: {e}") from e


def load_config_from_path(path: Union[str, Path]) -> Dict[str, Any]:
    """Load an optional JSON config file (`tankobon.json`) from `path`.

    Supported keys (optional): `title`, `format`, `strategy`, `depth`,
    `separator`, `volume_sizes`, `chapter_regex`, `page_regex`,
    `sensitivity`, `direction`, `metadata`, `cover`, `nb_worker`.

    Raises:
        ConfigError: if a `tankobon.json` file is present but is not a JSON
                     object.

    Returns an empty dict when no config file is present.
    """
    cfg_path = Path(path) / CONFIG_FILE_NAME
    if not cfg_path.exists():
        return {}
    try:
        with open(cfg_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid {CONFIG_FILE_NAME} ({cfg_path}): {e.msg}") from e
    except OSError as e:
        raise ConfigError(f"Invalid {CONFIG_FILE_NAME} ({cfg_path}): {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {CONFIG_FILE_NAME} ({cfg_path}): top-level JSON must be an object")
    logger.debug(f"loaded {cfg_path}: {sorted(data)}")
    return data


def load_metadata(path: Union[str, Path]) -> EbookMetadata:
    """Load series metadata from a YAML file."""
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid metadata file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid metadata file {path}: expected a mapping")
    try:
        return EbookMetadata.from_dict(data)
    except ValueError as e:
        raise ConfigError(f"Invalid metadata file {path}: {e}") from e
